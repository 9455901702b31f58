"""
Utility functions module.

Time handling shared across the system.

Time Semantics:
- All timestamps are integer epoch milliseconds (UTC)
- Bar intervals are aligned to the epoch, so a 1m bar starts on a whole minute
- Sample timestamps from the venue are authoritative; wall-clock time is only
  used when the venue omits one
"""
