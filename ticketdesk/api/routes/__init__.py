from . import ping, representatives, tickets

__all__ = ["ping", "representatives", "tickets"]
