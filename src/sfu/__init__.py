"""SFU-facing clients.

Everything in this package talks to remote services over HTTP and holds no
per-connection state; sessions are plain values passed back in on each call.
"""
