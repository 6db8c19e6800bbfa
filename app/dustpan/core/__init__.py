"""Core engine: configuration, XDG paths and the public entry points."""
