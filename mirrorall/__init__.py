"""mirrorall - keep bare mirrors of every repository an account owns."""

__version__ = "0.1.0"
