"""
Business Hub - Source Package

Record keeping for a small services business (clients, projects, tasks,
time tracking) and the analytics engine that turns those records into
revenue, productivity and time metrics.

DESIGN PRINCIPLES:
1. Records are replaced whole, never patched in place
2. Derived counts are recomputed from source, never incremented
3. Analytics are pure functions of the stored collections
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Business Hub Team"
