"""
Configuration for ctfile_cli.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_API_URL = "https://api.umpsa.top"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/139.0.0.0 Safari/537.36"
)
LINK_SCHEME = "ctfile://"


class CtfileConfig(BaseModel):
    """
    Settings shared by the link resolver, the binary provisioner and the
    aria2c invocation.
    """

    api_url: str = Field(DEFAULT_API_URL, description="Base URL of the resolution API")
    user_agent: str = Field(DEFAULT_USER_AGENT, description="User-Agent sent on every request")
    link_scheme: str = Field(LINK_SCHEME, description="Prefix every link argument must carry")
    aria2c_base_url: Optional[str] = Field(
        None, description="Overrides the release URL from runtime_dependencies.json"
    )
    install_dir: Optional[str] = Field(
        None, description="Where aria2c lives; defaults to the program directory"
    )
    temp_dir: Optional[str] = Field(None, description="Where the archive is downloaded to")
    connections: int = Field(64, ge=1, le=64, description="aria2c -x")
    splits: int = Field(64, ge=1, le=64, description="aria2c -s")
    max_redirects: int = Field(5, ge=0, description="Redirect hops followed by the probe")
    timeout: float = Field(30.0, gt=0, description="Connect/read timeout in seconds")

    class Config:
        extra = "forbid"

    @field_validator("api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @classmethod
    def from_dict(cls, env: Dict[str, Any]) -> "CtfileConfig":
        """
        Build a config from a plain dictionary, dropping ``None`` values so
        that unset command line options fall back to the defaults.
        """
        return cls(**{key: value for key, value in env.items() if value is not None})
