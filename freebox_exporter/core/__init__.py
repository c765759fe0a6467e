"""Core appliance client: transport, authentication, cache and refresh loop."""
