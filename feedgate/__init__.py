"""FeedGate — package-access gate backed by an open-source policy service."""

from feedgate.constants import FEEDGATE_VERSION as __version__

__all__ = ["__version__"]
