# Copyright (c) 2026 Pointmatic
#
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Pydantic data models for bshorts-feed."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CommentEntry(_CamelModel):
    id: str
    user: str = "Anonymous"
    address: str = ""
    text: str = ""
    timestamp: str = ""


class CanonicalVideoRecord(_CamelModel):
    id: str
    hash: str
    txid: str
    url: str = ""
    uploader: str = "Unknown"
    uploader_address: str = ""
    uploader_avatar: str = ""
    uploader_reputation: float | None = None
    description: str = ""
    duration: float = 0
    timestamp: str
    formatted_date: str = "Unknown date"
    tags: list[str] = []
    likes: float = 0
    ratings_count: int = 0
    average_rating: float = 1
    user_rating: float = 1
    comments: int = 0
    comment_data: list[CommentEntry] = []
    views: int | None = None
    type: str = "video"
    language: str = ""
    has_video: bool = False
    resolutions: list[dict] = []
    video_info: dict = {}
    bastyon_post_link: str = ""

    def to_snapshot(self) -> dict:
        """Serialize with client-facing keys; `views` only when known."""
        exclude = {"views"} if self.views is None else None
        return self.model_dump(mode="json", by_alias=True, exclude=exclude)


class LanguageResult(BaseModel):
    lang: str
    fetched: int = 0
    records: int = 0
    with_comments: int = 0
    with_views: int = 0
    published: bool = False
    latest_path: Path | None = None
    snapshot_path: Path | None = None
    error: str | None = None


class CycleResult(BaseModel):
    started_at: datetime
    finished_at: datetime
    total: int
    published: int
    skipped: int
    failed: int
    results: list[LanguageResult]
