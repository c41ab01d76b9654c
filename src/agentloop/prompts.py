"""Built-in prompts.

EXAMPLE_PROMPT drives a multi-turn session with the demo ping/echo tools:
the model has to look at earlier ping results before choosing later calls.
"""

from __future__ import annotations

EXAMPLE_PROMPT = """
I need you to help me check the connectivity to multiple servers and then echo back a status report.

Please:
1. First, ping "google.com" to check if we have internet connectivity
2. Then ping "internal.server.local" to check our internal network
3. Based on the results, echo back a status message that summarizes the network state
4. If google.com is reachable but internal server is not, ping "192.168.1.1" to check the local gateway
5. Finally, echo back your final diagnosis of the network situation

Make sure to use the tools step by step and provide clear feedback after each step.
"""
