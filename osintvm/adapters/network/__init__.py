"""Network adapters — HTTPS downloads."""

from osintvm.adapters.network.download import DownloadAdapter

__all__ = ["DownloadAdapter"]
