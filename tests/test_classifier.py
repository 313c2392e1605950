"""Tests for request classification."""

from __future__ import annotations

import pytest

from cachegate.classifier import classify
from cachegate.models import Category, Request, RoutingConfig


@pytest.fixture
def routing() -> RoutingConfig:
    return RoutingConfig()


def _classify(url: str, routing: RoutingConfig, method: str = "GET") -> Category:
    return classify(Request(method=method, url=url), routing)


class TestClassify:
    @pytest.mark.parametrize(
        "url",
        [
            "http://localhost:3000/api/content/trending",
            "http://localhost:3000/api/user/watch-history?limit=10",
            "https://other.example.com/api/x",
        ],
    )
    def test_data_query(self, routing, url) -> None:
        assert _classify(url, routing) is Category.DATA_QUERY

    @pytest.mark.parametrize(
        "url",
        [
            "https://images.unsplash.com/photo-123",
            "https://pub-cdn.sider.ai/u/abc",
            "https://via.placeholder.com/300x200",
            "http://localhost:3000/posters/hero.jpg",
            "http://localhost:3000/icons/logo.SVG",
            "http://localhost:3000/a.webp?w=200",
            "http://localhost:3000/posters/.jpg",
        ],
    )
    def test_media_asset(self, routing, url) -> None:
        assert _classify(url, routing) is Category.MEDIA_ASSET

    @pytest.mark.parametrize(
        "url",
        [
            "http://localhost:3000/",
            "http://localhost:3000/dashboard",
            "http://localhost:3000/static/app.js",
            "http://localhost:3000/jpg",
            "http://localhost:3000/posters/hero.jpg/",
            "https://images.unsplash.com.evil.test/x",
        ],
    )
    def test_generic(self, routing, url) -> None:
        assert _classify(url, routing) is Category.GENERIC

    def test_api_prefix_wins_over_image_extension(self, routing) -> None:
        assert _classify("http://localhost:3000/api/poster.png", routing) is Category.DATA_QUERY

    def test_method_does_not_matter(self, routing) -> None:
        assert _classify("http://localhost:3000/api/user/my-list", routing, "POST") is Category.DATA_QUERY

    def test_custom_rules(self) -> None:
        routing = RoutingConfig(
            api_prefixes=["/graphql"],
            media_origins=["https://cdn.example.com"],
            image_extensions=["avif"],
        )
        assert _classify("http://localhost:3000/graphql", routing) is Category.DATA_QUERY
        assert _classify("https://cdn.example.com/clip", routing) is Category.MEDIA_ASSET
        assert _classify("http://localhost:3000/a.avif", routing) is Category.MEDIA_ASSET
        assert _classify("http://localhost:3000/a.png", routing) is Category.GENERIC
        assert _classify("http://localhost:3000/api/x", routing) is Category.GENERIC
