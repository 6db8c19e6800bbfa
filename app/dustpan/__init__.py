"""dustpan - local disk-space reclamation.

Scans directory trees for build artifacts, junk files, caches, duplicates
and oversized files, and removes what you select under strict safety limits.
"""

__version__ = "0.1.0"
