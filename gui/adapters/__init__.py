"""GUI adapter layer.

This package holds the untrusted side of the bridge.

Notes
-----
Adapters exist to:
- expose only the registered commands to the window,
- keep database calls off the UI thread,
- turn parse errors and error envelopes into user-visible messages.
"""
