"""Local image storage for feed uploads, served under ``/uploads``."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import ulid

from app.feeds.domain.exceptions import InvalidArgumentError
from app.feeds.schemas import dto

_LOG = logging.getLogger(__name__)

URL_PREFIX = "/uploads/"

_EXTENSIONS = {
	"image/jpeg": ".jpg",
	"image/jpg": ".jpg",
	"image/png": ".png",
	"image/gif": ".gif",
}
ALLOWED_SUFFIXES = (".jpeg", ".jpg", ".png", ".gif")


class LocalImageStorage:
	def __init__(self, root: Path | str, *, max_bytes: int, public_base_url: Optional[str] = None) -> None:
		self.root = Path(root)
		self.max_bytes = max_bytes
		self.public_base_url = public_base_url.rstrip("/") if public_base_url else None

	def validate(self, upload: dto.ImageUpload) -> str:
		"""Return the extension to store ``upload`` under or raise InvalidArgumentError."""
		content_type = (upload.content_type or "").lower()
		suffix = Path(upload.filename or "").suffix.lower()
		if content_type not in _EXTENSIONS or suffix not in ALLOWED_SUFFIXES:
			raise InvalidArgumentError("unsupported_image_type")
		if not upload.data:
			raise InvalidArgumentError("empty_image")
		if len(upload.data) > self.max_bytes:
			raise InvalidArgumentError("image_too_large")
		return _EXTENSIONS[content_type]

	def save(self, upload: dto.ImageUpload, *, base_url: Optional[str] = None) -> str:
		"""Write the image and return its absolute URL."""
		extension = self.validate(upload)
		self.root.mkdir(parents=True, exist_ok=True)
		filename = f"{ulid.new().str.lower()}{extension}"
		(self.root / filename).write_bytes(upload.data)
		base = self.public_base_url or (base_url or "").rstrip("/")
		return f"{base}{URL_PREFIX}{filename}"

	def delete(self, url: Optional[str]) -> None:
		"""Remove a previously saved image; URLs that are not ours are ignored."""
		if not url:
			return
		path = urlparse(url).path
		if not path.startswith(URL_PREFIX):
			return
		name = path[len(URL_PREFIX):]
		if not name or "/" in name or name.startswith("."):
			return
		try:
			(self.root / name).unlink(missing_ok=True)
		except OSError:
			_LOG.warning("feeds.uploads.delete_failed", extra={"file": name})
