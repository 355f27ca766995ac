"""debsetup: converge a fresh Debian host to a declared configuration.

Core design goals:
- Probe before acting; act only on divergence
- Every step safe to re-run indefinitely
- User-scoped work runs as the user, never as root
- Per-step failure policy (fail-fast or tolerant)
- Centralized logging
"""

__all__ = []
