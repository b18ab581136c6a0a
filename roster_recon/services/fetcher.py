from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from urllib.parse import parse_qs, unquote, urljoin, urlparse

import requests
from bs4 import BeautifulSoup

from ..extract import SUPPORTED_EXTENSIONS
from ..models.config_models import FetchConfig

"""Remote fetcher: share link -> downloadable bytes.

Known share-link shapes are rewritten to their direct download form:
    Google Sheets  .../edit#gid=0        -> .../export?format=xlsx
    Google Docs    .../edit              -> .../export?format=docx
    Google Drive   /file/d/<id>/view     -> /uc?export=download&id=<id>
    Dropbox        ?dl=0                 -> ?dl=1
    OneDrive       /embed /view.aspx /redir -> /download, Doc.aspx -> action=download
    1drv.ms        short link resolved through its redirect first

Screenshot-hosting pages are fetched as HTML; the depicted image comes from
og:image, then twitter:image, then <img id="screenshot-image">.

Every failure is a FetchError naming the link.
"""

__all__ = [
    "FetchError",
    "FetchedResource",
    "SCREENSHOT_HOSTS",
    "RemoteFetcher",
    "direct_download_url",
    "extract_image_url",
    "is_screenshot_page",
]

logger = logging.getLogger(__name__)

SCREENSHOT_HOSTS = ("prnt.sc", "prntscr.com", "gyazo.com", "ibb.co", "imgur.com")
IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp", ".tif", ".tiff")

CONTENT_TYPE_EXTENSIONS = {
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": ".xlsx",
    "application/vnd.ms-excel": ".xls",
    "text/csv": ".csv",
    "application/pdf": ".pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
    "application/msword": ".doc",
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/bmp": ".bmp",
    "image/webp": ".webp",
    "image/tiff": ".tiff",
}

_DRIVE_FILE_RE = re.compile(r"/file/d/([A-Za-z0-9_-]+)")
_DISPOSITION_RE = re.compile(r"filename\*?=(?:UTF-8'')?\"?([^\";]+)\"?", re.IGNORECASE)


class FetchError(Exception):
    """Raised when a link cannot be turned into a downloadable resource."""


@dataclass(frozen=True)
class FetchedResource:
    content: bytes
    filename: str  # carries the inferred extension
    url: str  # final URL the bytes came from
    content_type: str | None = None


def _host(url: str) -> str:
    return (urlparse(url).hostname or "").lower()


def _host_matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith("." + domain)


def _append_param(url: str, param: str) -> str:
    return f"{url}{'&' if '?' in url else '?'}{param}"


def _url_extension(url: str) -> str:
    return PurePosixPath(unquote(urlparse(url).path)).suffix.lower()


def is_screenshot_page(url: str) -> bool:
    """True for screenshot-host pages (not for direct image links on those hosts)."""
    host = _host(url)
    if not any(_host_matches(host, h) for h in SCREENSHOT_HOSTS):
        return False
    return _url_extension(url) not in IMAGE_EXTENSIONS


def direct_download_url(url: str) -> str:
    """Rewrite a known share link into its direct download URL; others pass through."""
    parsed = urlparse(url)
    host = _host(url)

    if _host_matches(host, "docs.google.com"):
        if "/spreadsheets/" in parsed.path:
            return re.sub(r"/(edit|view|htmlview).*$", "/export?format=xlsx", url)
        if "/document/" in parsed.path:
            return re.sub(r"/(edit|view).*$", "/export?format=docx", url)
        return url

    if _host_matches(host, "drive.google.com"):
        m = _DRIVE_FILE_RE.search(parsed.path)
        file_id = m.group(1) if m else (parse_qs(parsed.query).get("id") or [None])[0]
        if file_id:
            return f"https://drive.google.com/uc?export=download&id={file_id}"
        return url

    if _host_matches(host, "dropbox.com"):
        if "dl=1" in url:
            return url
        if "dl=0" in url:
            return url.replace("dl=0", "dl=1")
        return _append_param(url, "dl=1")

    if any(_host_matches(host, h) for h in ("onedrive.live.com", "sharepoint.com", "1drv.ms")):
        for segment in ("/embed", "/view.aspx", "/redir"):
            if segment in url:
                return url.replace(segment, "/download", 1)
        if "Doc.aspx" in url:
            if "action=" in url:
                return re.sub(r"action=[^&]+", "action=download", url)
            return _append_param(url, "action=download")
        if "download=1" not in url and "action=download" not in url:
            return _append_param(url, "download=1")

    return url


def extract_image_url(html: str | bytes, page_url: str) -> str | None:
    """Locate the depicted image on a screenshot-host page."""
    soup = BeautifulSoup(html, "html.parser")
    candidates = (
        soup.find("meta", attrs={"property": "og:image"}),
        soup.find("meta", attrs={"name": "twitter:image"}),
    )
    src: str | None = None
    for tag in candidates:
        if tag is not None and tag.get("content"):
            src = str(tag["content"]).strip()
            break
    if not src:
        img = soup.find("img", id="screenshot-image")
        if img is not None and img.get("src"):
            src = str(img["src"]).strip()
    if not src:
        return None
    if src.startswith("//"):
        return "https:" + src
    return urljoin(page_url, src)


def _looks_like_html(content: bytes) -> bool:
    head = content[:100].decode("utf-8", errors="ignore").strip().lower()
    return "<!doctype html" in head or "<html" in head or head.startswith("<!--")


class RemoteFetcher:
    """Download import sources from share links over a requests.Session."""

    def __init__(self, config: FetchConfig | None = None, session: requests.Session | None = None) -> None:
        self.config = config or FetchConfig()
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": self.config.user_agent})
        self.session.max_redirects = self.config.max_redirects

    def _get(self, url: str, original: str, **kwargs) -> requests.Response:
        try:
            resp = self.session.get(url, timeout=self.config.timeout_seconds, **kwargs)
        except requests.RequestException as e:
            raise FetchError(f"could not download {original}: {e}") from e
        if resp.status_code == 403:
            raise FetchError(
                f"access denied (HTTP 403) for {original}; make sure the link is shared publicly"
            )
        if resp.status_code == 404:
            raise FetchError(f"file not found (HTTP 404) for {original}")
        if resp.status_code >= 400:
            raise FetchError(f"download failed (HTTP {resp.status_code}) for {original}")
        return resp

    def resolve_short_link(self, url: str) -> str:
        """Follow one redirect of a short link (1drv.ms) without downloading the target."""
        resp = self._get(url, url, allow_redirects=False)
        location = resp.headers.get("Location")
        if location and 300 <= resp.status_code < 400:
            return urljoin(url, location)
        return url

    def _infer_filename(
        self, resp: requests.Response, source_url: str, default: str | None = None
    ) -> str:
        for candidate in (resp.url or source_url, source_url):
            ext = _url_extension(candidate)
            if ext in SUPPORTED_EXTENSIONS:
                return PurePosixPath(unquote(urlparse(candidate).path)).name

        m = _DISPOSITION_RE.search(resp.headers.get("Content-Disposition", ""))
        if m and PurePosixPath(m.group(1)).suffix.lower() in SUPPORTED_EXTENSIONS:
            return m.group(1)

        content_type = (resp.headers.get("Content-Type") or "").split(";")[0].strip().lower()
        if content_type in CONTENT_TYPE_EXTENSIONS:
            return "download" + CONTENT_TYPE_EXTENSIONS[content_type]

        if "format=xlsx" in source_url:
            return "download.xlsx"
        if "format=docx" in source_url:
            return "download.docx"
        if default:
            return default
        raise FetchError(f"cannot determine the file type of {source_url}")

    def fetch(self, url: str) -> FetchedResource:
        url = url.strip()
        if not url.lower().startswith(("http://", "https://")):
            raise FetchError(f"not an http(s) link: {url}")

        target = url
        if is_screenshot_page(url):
            page = self._get(url, url)
            image_url = extract_image_url(page.content, page.url or url)
            if not image_url:
                raise FetchError(f"no image found on screenshot page {url}")
            logger.debug("screenshot page %s -> %s", url, image_url)
            target = image_url
        else:
            if _host_matches(_host(url), "1drv.ms"):
                target = self.resolve_short_link(url)
            target = direct_download_url(target)

        resp = self._get(target, url)
        content = resp.content
        if _looks_like_html(content):
            raise FetchError(
                f"{url} returned a web page instead of a file; use a direct or public share link"
            )
        default = "screenshot.png" if target != url and is_screenshot_page(url) else None
        filename = self._infer_filename(resp, target, default)
        logger.info("fetched %s (%d bytes) as %s", url, len(content), filename)
        return FetchedResource(
            content=content,
            filename=filename,
            url=resp.url or target,
            content_type=resp.headers.get("Content-Type"),
        )
