"""Registry of caption output formats keyed by name.

WHY: ``--formats`` on the CLI and ``formats`` in API requests name
formatters by key. This dict is the one place those keys resolve.

HOW: FORMATTERS maps each key to a BaseFormatter subclass; callers build
an instance per use, e.g. ``FORMATTERS["srt_captions"]()``.

RULES:
- Keys are snake_case and stable, since clients send them verbatim
- Importing this package must not touch the network or filesystem
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from shorts_maker.formatters.caption_json import CaptionJSONFormatter
from shorts_maker.formatters.plain_text import PlainTextFormatter
from shorts_maker.formatters.srt_captions import SRTCaptionFormatter

if TYPE_CHECKING:
    from shorts_maker.formatters.base import BaseFormatter

FORMATTERS: dict[str, type[BaseFormatter]] = {
    "srt_captions": SRTCaptionFormatter,
    "caption_json": CaptionJSONFormatter,
    "plain_text": PlainTextFormatter,
}
