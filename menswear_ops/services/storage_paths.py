from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlsplit

from menswear_ops.config import settings


def _cdn_host(cdn_base: str) -> str:
    return urlsplit(cdn_base).netloc.lower()


@dataclass(frozen=True)
class StoragePath:
    """Canonical object key relative to the CDN root, e.g. `products/12/front.jpg`."""

    value: str

    @classmethod
    def parse(cls, raw: str | None, *, cdn_base: str | None = None) -> StoragePath:
        text = (raw or '').strip()
        if not text:
            raise ValueError('Storage path is required')

        host = _cdn_host(cdn_base or settings.cdn_base_url)
        marker = f'{host}/'
        lowered = text.lower()
        if host and marker in lowered:
            # Legacy rows stored a full (sometimes doubled) CDN URL; keep what follows the last host.
            text = text[lowered.rfind(marker) + len(marker):]
        elif '://' in text:
            raise ValueError(f'Not a CDN path: {raw}')

        text = text.split('?', 1)[0].split('#', 1)[0].lstrip('/')
        segments = [segment for segment in text.split('/') if segment]
        if not segments:
            raise ValueError('Storage path is required')
        if any(segment in ('.', '..') for segment in segments):
            raise ValueError(f'Storage path may not contain relative segments: {raw}')
        return cls('/'.join(segments))

    def public_url(self, cdn_base: str | None = None) -> str:
        base = cdn_base or settings.cdn_base_url
        return f"{base.rstrip('/')}/{self.value}"

    def __str__(self) -> str:
        return self.value
