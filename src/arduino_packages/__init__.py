"""arduino-packages - install Arduino hardware platforms and tools from package indices."""

__version__ = "0.1.0"
