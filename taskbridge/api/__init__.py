"""
Relay API

Server side of the proxy transport: forwards browser requests to the
Bitrix24 webhook when the portal cannot be reached directly.
"""
