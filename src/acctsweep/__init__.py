"""acctsweep - policy-driven decommissioning of local user accounts."""
from __future__ import annotations

__version__ = "1.0.0"
