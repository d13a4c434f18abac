"""
Wiki Configuration Models

Strongly-typed records describing a configured MediaWiki instance and the
on-disk registry format (`config.json`).

Field names follow the MediaWiki settings they mirror ($wgServer,
$wgScriptPath, ...), so `scriptpath` and friends are kept lowercase.
"""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PublicWikiConfig(BaseModel):
    """
    Wiki configuration without credentials.

    Safe to show to end users or to write to logs.
    """

    sitename: str = Field(..., description="$wgSitename of the wiki.")
    server: str = Field(..., min_length=1, description="$wgServer, an absolute origin.")
    articlepath: str = Field(..., description="$wgArticlePath without the '/$1' suffix.")
    scriptpath: str = Field(..., description="$wgScriptPath of the wiki.")
    restpath: Optional[str] = Field(
        None,
        description="Custom REST API path. Defaults to {scriptpath}/rest.php.",
    )
    private: bool = Field(
        False,
        description="True when anonymous reads are disabled ($wgGroupPermissions['*']['read'] = false).",
    )

    model_config = ConfigDict(frozen=True, extra="ignore")


class WikiConfig(PublicWikiConfig):
    """
    Full wiki configuration, credentials included.

    A non-null `token` (OAuth2 consumer token) takes precedence over the
    `username`/`password` bot-password pair.
    """

    # repr=False keeps credentials out of tracebacks and log lines
    token: Optional[str] = Field(None, repr=False, description="OAuth2 token from Extension:OAuth.")
    username: Optional[str] = Field(None, repr=False, description="Username from Special:BotPasswords.")
    password: Optional[str] = Field(None, repr=False, description="Password from Special:BotPasswords.")

    def to_public(self) -> PublicWikiConfig:
        return PublicWikiConfig.model_validate(
            self.model_dump(exclude={"token", "username", "password"})
        )


class RegistryConfig(BaseModel):
    """
    The set of configured wikis plus the key selected at startup.
    """

    wikis: Dict[str, WikiConfig] = Field(default_factory=dict)
    default_wiki: str = Field(..., alias="defaultWiki", min_length=1)

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def _default_wiki_is_configured(self) -> "RegistryConfig":
        if self.default_wiki not in self.wikis:
            raise ValueError(
                f"defaultWiki '{self.default_wiki}' is not one of the configured wikis"
            )
        return self
