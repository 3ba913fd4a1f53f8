"""Allow ``python -m mcp_conduit``."""

from mcp_conduit.cli import main

if __name__ == "__main__":
    main()
