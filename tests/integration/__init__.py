"""
API tests for the Song Library service.

Run against the ASGI app in-process with an in-memory store and a stubbed
metadata provider; no database or network access is needed.
"""
