"""Module entrypoint.

Allows:
    python -m mcp_context_optimizer
"""

from __future__ import annotations

from mcp_context_optimizer.server.context_server import main

if __name__ == "__main__":
    main()
