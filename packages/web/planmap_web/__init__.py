"""planmap web — FastAPI backend for the bundle comparison dashboard."""

__version__ = "0.1.0"


def __getattr__(name: str):
    if name == "app":
        from planmap_web.app import app

        return app
    raise AttributeError(f"module 'planmap_web' has no attribute {name!r}")
