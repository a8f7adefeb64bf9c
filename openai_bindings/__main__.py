"""
Run the openai-bindings CLI.

Usage:
    python -m openai_bindings chat "Hello!"
"""

from openai_bindings.cli import main

if __name__ == "__main__":
    main()
