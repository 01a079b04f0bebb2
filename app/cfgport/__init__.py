"""cfgport - Portable configuration for AI coding assistants.

Exports installed assistant configuration into a single archive and
restores it on another machine, operating system, or user account.
"""

__version__ = "1.0.0"
