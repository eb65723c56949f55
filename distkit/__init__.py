"""Release manifests, announcements, installer rendering and cargo builds."""

__version__ = "0.1.0"

__all__ = [
    "announce",
    "cargo_build",
    "diffing",
    "homebrew",
    "installers",
    "schema",
    "templates",
]