"""Entry point for ``python -m deepseek_mcp``."""

from .cli import main

if __name__ == "__main__":
    main()
