"""
Pagecraft Kernel: Default Content

Product copy for freshly created or sparsely filled sections, kept out of the
generic normalizer. Each provider is registered per section type and only
fills gaps: it never replaces text the user has entered.

Also home to the section and project factories.
"""

from __future__ import annotations

import copy
from typing import Any

from pagecraft.kernel.normalizer import (
    normalize_project,
    normalize_section,
    register_default_content,
)
from pagecraft.kernel.types import (
    DEFAULT_CALLOUT,
    DEFAULT_PROJECT_META,
    DEFAULT_TARGET_STORES_CONFIG,
    UNTITLED_NAME,
    new_id,
    now_iso,
)

NOTE_CALLOUT_MARKS: dict[str, Any] = {"callout": {**DEFAULT_CALLOUT, "enabled": True}}
LEAD_MARKS: dict[str, Any] = {"bold": True, "textAlign": "center"}

CAMPAIGN_OVERVIEW_LINES: tuple[str, ...] = (
    "期間中、「〇〇〇」の対象店舗で 1回〇〇〇円（税込）以上の",
    "au PAY（コード支払い）で 使える最大〇〇％割引クーポンをau PAY アプリにてプレゼント！",
)

CAMPAIGN_OVERVIEW_NOTICE_LINES: tuple[str, ...] = (
    "〇〇店、〇〇店は対象外です。",
    "一部休業中店舗がございます。詳細はHPをご確認ください。",
)

TARGET_STORES_NOTICE_LINES: tuple[str, ...] = (
    "ご注意ください！",
    "リストに記載があっても、店舗の休業・閉業・移転や、その他の事情により利用できない場合があります。",
)

DEFAULT_LEGAL_NOTES_LINES: tuple[str, ...] = (
    "割引額は、小数点以下切り捨てとなります。",
    "＊レジで表示されているお買上げ金額は割引表示されません。割引後の金額はau PAY アプリの「履歴」をご確認ください。",
    "クーポンは〇回〇〇〇〇円（税込）以上のお支払いにご利用いただけます。クーポン適用前のお支払い額が〇〇〇〇円（税込）未満となる場合はクーポンが適用されず、クーポン適用前の金額で決済されます。",
    "キャンペーン期間中でも、クーポンの割引総額が所定の金額に達した場合、クーポン配布終了（au PAY アプリ内クーポン一覧非表示）となり、獲得済みクーポンのご利用は不可となります。",
    "au PAYが提供する他の割引とクーポンは併用できません。",
    "1つの店舗に対してクーポンが2つ以上発行されている場合、クーポン適用の優先順位は下記の通りです。",
    "①利用期限までの日数が少ないクーポンが優先されます。",
    "②利用期限までの日数が同じ場合、割引上限金額が大きいクーポンが優先されます（割引率には関係なく、割引上限金額が大きい方が優先されます）。",
    "クーポンはいかなる場合においても一切譲渡・換金できません。",
    "クーポンを使用した決済をキャンセルした場合、お客様がお支払いされた金額のみを返金するものとし、クーポンで割引された額については返金いたしません。",
    "クーポンを利用した決済の後に、一部キャンセルした場合は、クーポンの再発行は一切行いません。",
    "KDDIが不正と判断した場合は、クーポンは無効となります。",
    "掲載期間内であっても今後も同一又は更におトクなクーポンを提供する場合があります。",
    "本キャンペーンは予告なく変更・終了する場合があります。",
    "202〇年〇月〇日時点の情報です。",
)

# Legacy `data` fields each section type starts with
SECTION_DATA_DEFAULTS: dict[str, dict[str, Any]] = {
    "brandBar": {"logoText": "ブランド名", "brandText": "ブランド名"},
    "heroImage": {"imageUrl": "", "alt": "", "altText": ""},
    "campaignPeriodBar": {"startDate": "2026-03-01", "endDate": "2026-03-31"},
    "campaignOverview": {"title": "キャンペーン概要", "body": ""},
    "couponFlow": {"title": "クーポン利用の流れ"},
    "targetStores": {
        "title": "対象店舗",
        "note": "",
        "placeholder": "",
        "targetStoresConfig": DEFAULT_TARGET_STORES_CONFIG,
    },
    "rankingTable": {"title": "ランキング"},
    "legalNotes": {"title": "注意事項", "items": list(DEFAULT_LEGAL_NOTES_LINES), "text": ""},
    "footerHtml": {"html": "<small>© 会社名</small>"},
    "faq": {"title": "よくある質問"},
    "cta": {"title": "お申し込み"},
}

# Sections every new project starts with, top to bottom
DEFAULT_PROJECT_SECTION_TYPES: tuple[str, ...] = (
    "brandBar",
    "heroImage",
    "campaignPeriodBar",
    "campaignOverview",
    "targetStores",
    "legalNotes",
    "footerHtml",
)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def _line(text: str, marks: dict[str, Any] | None = None) -> dict[str, Any]:
    line: dict[str, Any] = {"id": new_id("line"), "text": text}
    if marks:
        line["marks"] = copy.deepcopy(marks)
    return line


def _text_item(lines: list[dict[str, Any]]) -> dict[str, Any]:
    return {"id": new_id("item"), "type": "text", "lines": lines}


def _insert_after_title(items: list[dict[str, Any]], item: dict[str, Any]) -> list[dict[str, Any]]:
    index = 1 if items and items[0]["type"] == "title" else 0
    return [*items[:index], item, *items[index:]]


def _line_texts(item: dict[str, Any]) -> set[str]:
    return {line["text"].strip() for line in item.get("lines", [])}


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


@register_default_content("campaignOverview")
def campaign_overview_content(items: list[dict[str, Any]], data: dict[str, Any]) -> list[dict[str, Any]]:
    """Lead copy and the exclusion notice, unless the section was created blank."""
    if data.get("isBlank"):
        return items

    notice = set(CAMPAIGN_OVERVIEW_NOTICE_LINES)
    text_items = [item for item in items if item["type"] == "text"]

    def is_notice(item: dict[str, Any]) -> bool:
        return notice <= _line_texts(item)

    if not any(not is_notice(item) for item in text_items):
        items = [*items, _text_item([_line(text, LEAD_MARKS) for text in CAMPAIGN_OVERVIEW_LINES])]

    present = set().union(*(_line_texts(item) for item in text_items)) if text_items else set()
    if not notice & present:
        items = [*items, _text_item([_line(text, NOTE_CALLOUT_MARKS) for text in CAMPAIGN_OVERVIEW_NOTICE_LINES])]
    return items


@register_default_content("targetStores")
def target_stores_content(items: list[dict[str, Any]], data: dict[str, Any]) -> list[dict[str, Any]]:
    """
    The first non-title item is always a non-empty advisory text item.
    Blank advisory lines are refilled from the default notice.
    """
    first = 1 if items and items[0]["type"] == "title" else 0
    if first >= len(items) or items[first]["type"] != "text":
        notice = _text_item([_line(text, NOTE_CALLOUT_MARKS) for text in TARGET_STORES_NOTICE_LINES])
        return _insert_after_title(items, notice)

    item = items[first]
    lines = item["lines"]
    if not any(line["text"].strip() for line in lines):
        lines = [_line(text, NOTE_CALLOUT_MARKS) for text in TARGET_STORES_NOTICE_LINES]
    else:
        lines = [
            {**line, "text": TARGET_STORES_NOTICE_LINES[i], "marks": _with_note_callout(line.get("marks"))}
            if not line["text"].strip() and i < len(TARGET_STORES_NOTICE_LINES)
            else line
            for i, line in enumerate(lines)
        ]
    if lines == item["lines"]:
        return items
    items = list(items)
    items[first] = {**item, "lines": lines}
    return items


def _with_note_callout(marks: dict[str, Any] | None) -> dict[str, Any]:
    callout = {**DEFAULT_CALLOUT, **(marks or {}).get("callout", {}), "enabled": True, "variant": "note"}
    return {**(marks or {}), "callout": callout}


@register_default_content("legalNotes")
def legal_notes_content(items: list[dict[str, Any]], data: dict[str, Any]) -> list[dict[str, Any]]:
    """
    A legal-notes section without a text item gets one built from `data.items`
    (strings or {text, bullet} entries), or the default notes when those are blank.
    Bullets default to `disc` unless `data.bullet` is "none".
    """
    if any(item["type"] == "text" for item in items):
        return items

    default_bullet = "none" if data.get("bullet") == "none" else "disc"
    entries: list[tuple[str, str]] = []
    for entry in data.get("items") if isinstance(data.get("items"), list) else []:
        if isinstance(entry, str):
            entries.append((entry, default_bullet))
        elif isinstance(entry, dict):
            text = entry.get("text") if isinstance(entry.get("text"), str) else ""
            bullet = entry.get("bullet") if entry.get("bullet") in ("none", "disc") else default_bullet
            entries.append((text, bullet))
    if not any(text.strip() for text, _ in entries):
        entries = [(text, default_bullet) for text in DEFAULT_LEGAL_NOTES_LINES]

    notes = _text_item([_line(text, {"bullet": bullet}) for text, bullet in entries])
    return _insert_after_title(items, notes)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def create_section(section_type: str, *, section_id: str | None = None) -> dict[str, Any]:
    """A new canonical section of `section_type` with its type defaults filled in."""
    content: dict[str, Any] = {"items": []}
    if section_type == "targetStores":
        content.update(storeCsv={"headers": [], "rows": []}, storeLabels={}, storeFilters={})
    return normalize_section({
        "id": section_id or new_id(f"sec_{section_type}"),
        "type": section_type,
        "visible": True,
        "locked": False,
        "data": copy.deepcopy(SECTION_DATA_DEFAULTS.get(section_type, {})),
        "content": content,
    })


def create_untitled_section() -> dict[str, Any]:
    """Blank overview section used by the plain "add section" command."""
    return normalize_section({
        "id": new_id("sec_campaignOverview"),
        "type": "campaignOverview",
        "visible": True,
        "locked": False,
        "name": UNTITLED_NAME,
        "data": {"isBlank": True},
        "content": {"items": []},
    })


def create_default_project() -> dict[str, Any]:
    stamp = now_iso()
    return normalize_project({
        "meta": {**DEFAULT_PROJECT_META, "createdAt": stamp, "updatedAt": stamp},
        "sections": [
            create_section(section_type, section_id=f"sec_{section_type}")
            for section_type in DEFAULT_PROJECT_SECTION_TYPES
        ],
    })
