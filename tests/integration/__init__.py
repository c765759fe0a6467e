"""Integration tests for freebox_exporter.

Tests run against a real HTTPS mock appliance to verify certificate
pinning, the registration and login flows, and full refresh cycles.
"""
