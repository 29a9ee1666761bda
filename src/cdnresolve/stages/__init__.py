"""Resolution stages, registered in order: alias, cdn, http."""

from .alias import AliasStage, find_alias
from .cdn import CdnStage
from .http import HttpStage

__all__ = ["AliasStage", "CdnStage", "HttpStage", "find_alias"]
