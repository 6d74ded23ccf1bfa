"""
Tutor - Kiosk companion core package

This is the root package for the Tutor companion, containing shared utilities
and the data/rule core consumed by the kiosk shell.

Core modules:
- datetime_utils: Timezone-pinned clock parts, HH:MM parsing, time windows
- utils: Environment-style parsing helpers
- companion: Payload loading, validation, event rules, and schedule annotation
"""

__version__ = "0.4.2"
