"""URL and edit-summary helpers shared by the request layer and its callers."""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from .models import WikiConfig

EDIT_COMMENT_PRODUCT = "MediaWiki MCP Server"

# Characters encodeURIComponent leaves alone on top of quote()'s defaults
_URI_COMPONENT_SAFE = "!*'()"


def rest_api_base(config: WikiConfig) -> str:
    """
    Return the REST API base URL of a wiki.

    `server + restpath` when a custom restpath is configured, otherwise
    `server + scriptpath + "/rest.php"`. Cookie scoping depends on this
    exact rule.
    """
    if config.restpath:
        return f"{config.server}{config.restpath}"
    return f"{config.server}{config.scriptpath}/rest.php"


def action_api_url(config: WikiConfig) -> str:
    """Return the Action API endpoint (`api.php`) of a wiki."""
    return f"{config.server}{config.scriptpath}/api.php"


def get_page_url(config: WikiConfig, title: str) -> str:
    return f"{config.server}{config.articlepath}/{quote(title, safe=_URI_COMPONENT_SAFE)}"


def format_edit_comment(tool: str, comment: Optional[str] = None) -> str:
    """
    Build an edit summary tagged with the tool that made the edit.

    >>> format_edit_comment("MyTool")
    'Automated edit (via MyTool on MediaWiki MCP Server)'
    >>> format_edit_comment("MyTool", "fix typo")
    'fix typo (via MyTool on MediaWiki MCP Server)'
    """
    suffix = f"(via {tool} on {EDIT_COMMENT_PRODUCT})"
    if not comment:
        return f"Automated edit {suffix}"
    return f"{comment} {suffix}"
