"""Command-line user interface: argument routing, output rendering and prompts."""
