"""
Site Mirror Orchestrator — scheduled mirroring of location servers.
"""

__version__ = "1.0.0"
