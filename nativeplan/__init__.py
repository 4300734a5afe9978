"""nativeplan: build-plan compiler and completion verifier for native Apple-platform apps."""

__version__ = "0.1.0"
