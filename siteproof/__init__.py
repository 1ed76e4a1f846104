"""SiteProof AI: tool-calling construction compliance assistant."""

__version__ = "0.4.0"
