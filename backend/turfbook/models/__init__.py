from .tables import Base, Bookings, SlotLocks, SlotStatus, Turfs, metadata

__all__ = ["Base", "Bookings", "SlotLocks", "SlotStatus", "Turfs", "metadata"]
