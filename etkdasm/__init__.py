"""Basic-block separation and symbolic annotation of EVM instructions."""

__version__ = "0.1.0"
__all__ = ["annotated", "annotator", "basic", "exit", "ops", "render", "sym"]