"""storyvoice - cached voice cloning and narration for storybooks."""

__version__ = "0.1.0"
__all__ = ["narrate_story"]


def __getattr__(name: str):  # type: ignore[no-untyped-def]
    if name == "narrate_story":
        from .core import narrate_story

        return narrate_story
    raise AttributeError(f"module 'storyvoice' has no attribute {name!r}")
