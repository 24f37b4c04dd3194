"""
Resolves ctfile links to a download URL and a file name.

Resolution takes one call to the ``download_info`` endpoint and one ranged
request against the ``download`` endpoint whose redirects reveal the real
file name.
"""

import logging
import posixpath
import re
from typing import List
from urllib.parse import unquote_plus, urlencode, urlsplit

import requests
from pydantic import ValidationError

from ctfile_cli.ctfile_config import CtfileConfig
from ctfile_cli.ctfile_exceptions import APIError, BadInputError, NotFoundError
from ctfile_cli.ctfile_logger import CtfileLogger
from ctfile_cli.ctfile_types import DownloadInfo, ResolvedLink

DEFAULT_FILENAME = "download_file"
FILENAME_PARAM = "downname"
MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class LinkResolver:
    """
    Turns ``ctfile://<xtlink>`` arguments into ResolvedLink objects.

    The redirect probe follows at most ``session.max_redirects`` hops; see
    ``cli.build_session``.
    """

    def __init__(self, config: CtfileConfig, session: requests.Session, logger: CtfileLogger):
        self.config = config
        self.session = session
        self.logger = logger

    def parse_link(self, raw_link: str) -> str:
        """
        Strip the link scheme and return the link id.

        Raises:
            BadInputError: the scheme is missing or nothing follows it
        """
        scheme = self.config.link_scheme
        if not raw_link.startswith(scheme):
            raise BadInputError(f"Malformed link {raw_link!r}, expected {scheme}<xtlink>")
        link_id = raw_link[len(scheme):]
        if not link_id:
            raise BadInputError(f"Malformed link {raw_link!r}, the xtlink id is empty")
        return link_id

    def resolve(self, raw_link: str) -> ResolvedLink:
        return self.resolve_id(self.parse_link(raw_link))

    def resolve_id(self, link_id: str) -> ResolvedLink:
        """
        Resolve an already parsed link id.

        Raises:
            APIError: the API was unreachable or returned garbage
            NotFoundError: the API has no download for this id
        """
        self.logger.log(f"Using API server: {self.config.api_url}", logging.INFO)
        infos = self.fetch_download_info(link_id)
        if not infos or not infos[0].key:
            raise NotFoundError(f"No valid file_id found for {link_id}")

        file_key = infos[0].key
        download_url = self.build_download_url(link_id, file_key)
        self.logger.log(f"Download link: {download_url}", logging.INFO)

        final_url = self.probe_redirects(download_url)
        self.logger.log(f"Redirected to {final_url}", logging.DEBUG)
        filename = self.extract_filename(final_url)
        self.logger.log(f"File name: {filename}", logging.INFO)

        return ResolvedLink(
            link_id=link_id,
            file_key=file_key,
            download_url=download_url,
            filename=filename,
        )

    def build_info_url(self, link_id: str) -> str:
        return f"{self.config.api_url}/download_info?{urlencode({'xtlink': link_id})}"

    def build_download_url(self, link_id: str, file_key: str) -> str:
        query = urlencode({"xtlink": link_id, "file_id": file_key})
        return f"{self.config.api_url}/download?{query}"

    def fetch_download_info(self, link_id: str) -> List[DownloadInfo]:
        """
        Fetch and parse the ``download_info`` array for a link id.
        """
        url = self.build_info_url(link_id)
        try:
            response = self.session.get(
                url,
                headers={"User-Agent": self.config.user_agent},
                timeout=self.config.timeout,
            )
            data = response.json()
        except ValueError as e:
            raise APIError(f"Unable to parse response from {url}: {e}") from e
        except requests.RequestException as e:
            raise APIError(f"Request to {url} failed: {e}") from e

        if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
            raise APIError(f"Unexpected response from {url}: expected a JSON array of objects")
        try:
            return [DownloadInfo(**item) for item in data]
        except ValidationError as e:
            raise APIError(f"Unexpected response from {url}: {e}") from e

    def probe_redirects(self, download_url: str) -> str:
        """
        Follow the redirects of ``download_url`` and return the last URL
        reached, asking for a single byte and never reading the body.

        When the chain is longer than the redirect limit the last URL
        reached is returned instead of failing.
        """
        headers = {"User-Agent": self.config.user_agent, "Range": "bytes=0-0"}
        try:
            response = self.session.get(
                download_url,
                headers=headers,
                stream=True,
                allow_redirects=True,
                timeout=self.config.timeout,
            )
        except requests.TooManyRedirects as e:
            if e.response is None:
                raise APIError(f"Too many redirects from {download_url}") from e
            e.response.close()
            return e.response.url
        except requests.RequestException as e:
            raise APIError(f"Request to {download_url} failed: {e}") from e

        response.close()
        return response.url

    @staticmethod
    def extract_filename(url: str) -> str:
        """
        Return the percent-decoded ``downname`` query parameter of ``url``.

        Falls back to ``download_file`` when the parameter is missing or
        empty, and to the raw value when it holds a malformed escape or does
        not decode as UTF-8.
        """
        raw_value = None
        for field in urlsplit(url).query.split("&"):
            name, _, value = field.partition("=")
            if unquote_plus(name) == FILENAME_PARAM:
                raw_value = value
                break
        if not raw_value:
            return DEFAULT_FILENAME

        if MALFORMED_ESCAPE.search(raw_value):
            filename = raw_value
        else:
            try:
                filename = unquote_plus(raw_value, errors="strict")
            except UnicodeDecodeError:
                filename = raw_value

        # keep aria2c writing into the working directory
        filename = posixpath.basename(filename.replace("\\", "/"))
        if filename in ("", ".", ".."):
            return DEFAULT_FILENAME
        return filename
