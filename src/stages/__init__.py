"""
Pipeline stages package.

Each stage module follows a consistent pattern:
- Docstring with Purpose, Input/Output files and Usage
- Configuration constants for stage-specific settings
- main() entry point that accepts upstream outputs (running the
  upstream stages when they are omitted) and returns its own output
"""
