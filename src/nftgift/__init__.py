"""NFTGift: custody vault that wraps fungible deposits into transferable claims."""

__version__ = "0.1.0"
