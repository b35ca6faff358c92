"""
Content resolution for the two asset sides of an image request.

A side may hold inline bytes, an external reference, both, or nothing.
`classify_asset` folds those columns into one tagged value and
`resolve_download` turns it into something the download route can serve.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ..core.errors import ContentNotAvailable, ContentNotInline, ValidationError
from ..models.image_request import ImageRequest


logger = logging.getLogger("content")

SIDES = ("original", "edited")
DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_EDITED_NAME = "edited-image"

_DATA_URI_RE = re.compile(r"^data:([^;]+);base64,(.+)$", re.DOTALL)


@dataclass(frozen=True)
class InlineAsset:
    data: bytes
    content_type: str


@dataclass(frozen=True)
class ExternalAsset:
    url: str

    @property
    def is_remote(self) -> bool:
        return self.url.lower().startswith(("http://", "https://"))


@dataclass(frozen=True)
class AbsentAsset:
    pass


Asset = Union[InlineAsset, ExternalAsset, AbsentAsset]


@dataclass(frozen=True)
class ResolvedContent:
    data: bytes
    content_type: str
    file_name: str


def check_side(side: str) -> str:
    if side not in SIDES:
        raise ValidationError("Invalid image type. Use 'original' or 'edited'")
    return side


def _columns(record: ImageRequest, side: str) -> tuple[Optional[bytes], Optional[str], Optional[str], Optional[str]]:
    if side == "original":
        return (
            record.original_file_content,
            record.original_file_path,
            record.original_content_type,
            record.original_file_name,
        )
    return (
        record.edited_file_content,
        record.edited_file_path,
        record.edited_content_type,
        record.edited_file_name,
    )


def decode_data_uri(value: str) -> Optional[InlineAsset]:
    match = _DATA_URI_RE.match(value or "")
    if not match:
        return None
    try:
        data = base64.b64decode(match.group(2), validate=False)
    except (binascii.Error, ValueError):
        logger.warning("Undecodable data URI payload")
        return None
    return InlineAsset(data=data, content_type=match.group(1) or DEFAULT_CONTENT_TYPE)


def is_data_uri(value: Optional[str]) -> bool:
    return bool(value) and value.startswith("data:")


def classify_asset(record: ImageRequest, side: str) -> Asset:
    """Inline content wins over any external reference."""
    check_side(side)
    content, path, content_type, _ = _columns(record, side)
    if content:
        return InlineAsset(data=bytes(content), content_type=content_type or DEFAULT_CONTENT_TYPE)
    if path:
        decoded = decode_data_uri(path)
        if decoded is not None:
            return decoded
        if is_data_uri(path):
            return AbsentAsset()
        return ExternalAsset(url=path)
    return AbsentAsset()


def download_name(record: ImageRequest, side: str) -> str:
    _, _, _, name = _columns(record, side)
    if name:
        return name
    return DEFAULT_EDITED_NAME if side == "edited" else "image"


def _read_local(path: str, local_root: Optional[Path]) -> Optional[bytes]:
    if local_root is None:
        return None
    try:
        root = local_root.resolve()
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = root / candidate
        candidate = candidate.resolve()
    except (OSError, RuntimeError):
        return None
    if root != candidate and root not in candidate.parents:
        return None
    if not candidate.is_file():
        return None
    return candidate.read_bytes()


def resolve_download(
    record: ImageRequest,
    side: str,
    *,
    strict: bool = False,
    local_root: Optional[Path] = None,
) -> Union[ResolvedContent, ExternalAsset]:
    """
    Resolve one side of ``record`` for download.

    Returns `ResolvedContent` for bytes held by the portal and an
    `ExternalAsset` for remote references (the caller redirects). A
    non-remote path is served only when it names a file under
    ``local_root``. Raises `ContentNotAvailable` when nothing usable is
    stored and `ContentNotInline` for remote references when ``strict``.
    """
    asset = classify_asset(record, side)
    name = download_name(record, side)
    _, _, declared_type, _ = _columns(record, side)

    if isinstance(asset, InlineAsset):
        return ResolvedContent(data=asset.data, content_type=asset.content_type, file_name=name)

    if isinstance(asset, ExternalAsset):
        if asset.is_remote:
            if strict:
                raise ContentNotInline()
            return asset
        data = _read_local(asset.url, local_root)
        if data is not None:
            return ResolvedContent(data=data, content_type=declared_type or DEFAULT_CONTENT_TYPE, file_name=name)
        logger.info("Legacy path not readable request_id=%s side=%s", record.id, side)

    raise ContentNotAvailable()
