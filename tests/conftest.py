"""Shared fixtures: in-process fakes shaped like googleapiclient resources."""

import json
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from googleapiclient.errors import HttpError

from vidhunt.repository import ChannelRepository
from vidhunt.storage import MemoryDocumentStore
from vidhunt.youtube_api import YouTubeService

FIXED_NOW = datetime(2024, 2, 20, 13, 42, 0, tzinfo=timezone.utc)


def http_error(status=403, message="quotaExceeded"):
    resp = SimpleNamespace(status=status, reason="Forbidden")
    content = json.dumps({"error": {"code": status, "message": message}}).encode("utf-8")
    return HttpError(resp, content)


def make_channel(
    channel_id,
    subscribers=1000,
    views=50000,
    videos=10,
    title=None,
    published_at="2020-01-01T00:00:00Z",
    uploads=None,
):
    """channels.list item with every part populated."""
    return {
        "id": channel_id,
        "snippet": {
            "title": title or f"Channel {channel_id}",
            "description": "about",
            "publishedAt": published_at,
            "country": "US",
            "thumbnails": {"default": {"url": f"https://img/{channel_id}/d.jpg"}},
        },
        "statistics": {
            "subscriberCount": str(subscribers),
            "viewCount": str(views),
            "videoCount": str(videos),
            "hiddenSubscriberCount": False,
        },
        "contentDetails": {"relatedPlaylists": {"uploads": uploads or f"UU{channel_id}"}},
        "brandingSettings": {"channel": {"keywords": "music live"}},
        "topicDetails": {"topicIds": ["/m/04rlf"]},
        "status": {"privacyStatus": "public", "madeForKids": False},
    }


class FakeRequest:
    def __init__(self, handler, kwargs):
        self._handler = handler
        self.kwargs = kwargs

    def execute(self):
        return self._handler(**self.kwargs)


class FakeResource:
    def __init__(self, name, handler, calls):
        self._name = name
        self._handler = handler
        self._calls = calls

    def list(self, **kwargs):
        self._calls.append((self._name, kwargs))
        return FakeRequest(self._handler, kwargs)


class FakeYouTube:
    """
    Minimal stand-in for build('youtube', 'v3').

    search_pages: list of pages, each a list of channel ids
    channels: channel id -> channels.list item (see make_channel)
    playlists: playlist id -> list of video ids
    videos: video id -> (duration, view count)
    errors: resource name -> exception raised on execute
    """

    def __init__(self, search_pages=(), channels=(), playlists=None, videos=None, handles=None):
        self.search_pages = [list(p) for p in search_pages]
        self.channels_db = {c["id"]: c for c in channels}
        self.playlists = playlists or {}
        self.videos_db = videos or {}
        self.handles = handles or {}
        self.errors = {}
        self.calls = []

    def _maybe_fail(self, name):
        if name in self.errors:
            raise self.errors[name]

    def calls_to(self, name):
        return [kw for n, kw in self.calls if n == name]

    # search
    def _search(self, **kw):
        self._maybe_fail("search")
        index = int(kw.get("pageToken") or 0)
        page = self.search_pages[index] if index < len(self.search_pages) else []
        items = [{"id": {"kind": "youtube#channel", "channelId": c}, "snippet": {"channelId": c}} for c in page]
        response = {"items": items}
        if index + 1 < len(self.search_pages):
            response["nextPageToken"] = str(index + 1)
        return response

    def search(self):
        return FakeResource("search", self._search, self.calls)

    # channels
    def _channels(self, **kw):
        self._maybe_fail("channels")
        if "forHandle" in kw:
            channel_id = self.handles.get(kw["forHandle"])
            return {"items": [{"id": channel_id}] if channel_id else []}
        ids = kw["id"].split(",")
        return {"items": [self.channels_db[i] for i in ids if i in self.channels_db]}

    def channels(self):
        return FakeResource("channels", self._channels, self.calls)

    # playlistItems
    def _playlist_items(self, **kw):
        self._maybe_fail("playlistItems")
        ids = self.playlists.get(kw["playlistId"], [])
        start = int(kw.get("pageToken") or 0)
        end = start + kw.get("maxResults", 50)
        response = {"items": [{"contentDetails": {"videoId": v}} for v in ids[start:end]]}
        if end < len(ids):
            response["nextPageToken"] = str(end)
        return response

    def playlistItems(self):
        return FakeResource("playlistItems", self._playlist_items, self.calls)

    # videos
    def _videos(self, **kw):
        self._maybe_fail("videos")
        items = []
        for video_id in kw["id"].split(","):
            if video_id in self.videos_db:
                duration, views = self.videos_db[video_id]
                items.append({
                    "id": video_id,
                    "contentDetails": {"duration": duration},
                    "statistics": {"viewCount": str(views)},
                })
        return {"items": items}

    def videos(self):
        return FakeResource("videos", self._videos, self.calls)


@pytest.fixture
def fake_youtube():
    return FakeYouTube()


@pytest.fixture
def service_for():
    """Build a YouTubeService around a FakeYouTube."""
    def _build(fake):
        return YouTubeService("test-key", client=fake, request_delay=0)
    return _build


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def repository(store):
    return ChannelRepository(store, "root", clock=lambda: FIXED_NOW)
