"""
Pagecraft kernel test configuration.

Shared fixtures: a small three-section project (A, B, C) with stable ids,
the editor state built from it, and an Editor session over it.
Section B also carries an image item and a button item.
"""

import pytest

from pagecraft.kernel.editor import Editor
from pagecraft.kernel.reducer import initial_state


def _section(key: str, title: str, lines: list[str], *extra_items: dict) -> dict:
    return {
        "id": f"sec_{key}",
        "type": "couponFlow",
        "content": {
            "items": [
                {"id": f"{key}_title", "type": "title", "text": title},
                {
                    "id": f"{key}_text",
                    "type": "text",
                    "lines": [{"id": f"{key}_l{i}", "text": text} for i, text in enumerate(lines)],
                },
                *extra_items,
            ]
        },
    }


@pytest.fixture
def raw_project():
    return {
        "meta": {"projectName": "Spring campaign", "templateType": "coupon"},
        "sections": [
            _section("a", "Section A", ["a first", "a second"]),
            _section(
                "b",
                "Section B",
                ["b first", "b second", "b third"],
                {
                    "id": "b_images",
                    "type": "image",
                    "images": [
                        {"id": "b_img0", "src": "https://cdn.example.com/0.png"},
                        {"id": "b_img1", "src": "https://cdn.example.com/1.png"},
                    ],
                },
                {"id": "b_button", "type": "button", "label": "Go", "target": {"kind": "url", "url": "/go"}},
            ),
            _section("c", "Section C", ["c first"]),
        ],
    }


@pytest.fixture
def state(raw_project):
    return initial_state(raw_project)


@pytest.fixture
def editor(raw_project):
    return Editor(raw_project)
