"""
Types exchanged with the resolution API.
"""

from pydantic import BaseModel


class DownloadInfo(BaseModel):
    """One element of the ``download_info`` JSON array."""

    key: str = ""
    name: str = ""

    class Config:
        extra = "allow"


class ResolvedLink(BaseModel):
    """
    A link resolved to something aria2c can download.

    ``download_url`` is the API's download endpoint, not the URL it redirects
    to; aria2c follows the redirects itself.
    """

    link_id: str
    file_key: str
    download_url: str
    filename: str

    class Config:
        frozen = True
