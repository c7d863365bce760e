"""
Server package - SSH acceptor, active session registry and graceful shutdown.
"""
