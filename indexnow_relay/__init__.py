"""Ретранслятор вебхуков BigCommerce в IndexNow."""

__version__ = "1.0.0"
