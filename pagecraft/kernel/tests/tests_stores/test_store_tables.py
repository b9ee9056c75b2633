"""
Pagecraft Store Tables tests: CSV parsing, storeCsv fragments, the
project-level stores projection and target-stores config.
"""

from pagecraft import kernel
from pagecraft.kernel.stores import (
    build_store_csv,
    build_stores_from_store_csv,
    normalize_target_stores_config,
    parse_csv,
)

HEADERS = ["店舗ID", "店舗名", "郵便番号", "住所", "都道府県", "駐車場"]


# ============================================================================
# parse_csv
# ============================================================================


class TestParseCsv:
    def test_bom_crlf_and_blank_lines(self):
        headers, rows = parse_csv("\ufeffid,name\r\n\r\n 1 , A \r\n2,B\r\n")
        assert headers == ["id", "name"]
        assert rows == [["1", "A"], ["2", "B"]]

    def test_quoted_cells_keep_commas(self):
        _, rows = parse_csv('id,address\n1,"Tokyo, Chiyoda"\n')
        assert rows == [["1", "Tokyo, Chiyoda"]]

    def test_empty_text(self):
        assert parse_csv("") == ([], [])
        assert parse_csv("\n \n") == ([], [])


# ============================================================================
# build_store_csv
# ============================================================================


class TestBuildStoreCsv:
    def test_rows_are_keyed_by_header(self):
        fragment = build_store_csv(["id", "name"], [["1", "A"], ["2"]])
        assert fragment["rows"] == [{"id": "1", "name": "A"}, {"id": "2", "name": ""}]
        assert fragment["stats"]["totalRows"] == 2
        assert fragment["importedAt"]

    def test_duplicate_ids_listed_once(self):
        rows = [["1", "A"], ["1", "B"], ["1", "C"], ["2", "D"], ["", "E"], ["", "F"]]
        stats = build_store_csv(["id", "name"], rows)["stats"]
        assert stats["duplicateIds"] == ["1"]
        assert stats["duplicateCount"] == 1

    def test_no_headers(self):
        fragment = build_store_csv([], [])
        assert fragment["stats"] == {"totalRows": 0, "duplicateCount": 0, "duplicateIds": []}


# ============================================================================
# stores projection
# ============================================================================


class TestStoresProjection:
    def test_canonical_and_extra_columns(self):
        fragment = build_store_csv(HEADERS, [["S1", "Shop", "100-0001", "Chiyoda 1", "東京都", "有"]])
        stores = build_stores_from_store_csv(fragment)
        assert stores["columns"] == HEADERS
        assert stores["extraColumns"] == ["駐車場"]
        assert stores["canonical"] == {
            "storeIdKey": "店舗ID",
            "storeNameKey": "店舗名",
            "postalCodeKey": "郵便番号",
            "addressKey": "住所",
            "prefectureKey": "都道府県",
        }
        assert stores["rows"][0]["駐車場"] == "有"

    def test_fewer_than_five_columns_gives_none(self):
        assert build_stores_from_store_csv({"headers": HEADERS[:4], "rows": []}) is None

    def test_garbage_gives_none(self):
        assert build_stores_from_store_csv(None) is None
        assert build_stores_from_store_csv({"headers": "a,b"}) is None


# ============================================================================
# target-stores config
# ============================================================================


class TestTargetStoresConfig:
    def test_defaults(self):
        assert normalize_target_stores_config(None) == {
            "labelKeys": [],
            "filterKeys": ["都道府県"],
            "pageSize": 10,
            "columnConfig": {},
        }

    def test_prefecture_always_first_and_unique(self):
        config = normalize_target_stores_config({"filterKeys": ["駐車場", "都道府県", "", 3]})
        assert config["filterKeys"] == ["都道府県", "駐車場"]

    def test_bad_page_size_falls_back(self):
        assert normalize_target_stores_config({"pageSize": 0})["pageSize"] == 10
        assert normalize_target_stores_config({"pageSize": True})["pageSize"] == 10
        assert normalize_target_stores_config({"pageSize": 25})["pageSize"] == 25

    def test_column_config(self):
        config = normalize_target_stores_config({
            "columnConfig": {
                "駐車場": {"showAsLabel": 1, "selectedValues": ["有", "", None], "label": "P", "valueDisplay": "raw"},
                "bad": "x",
            }
        })
        assert config["columnConfig"] == {
            "駐車場": {
                "showAsLabel": True,
                "enableFilter": False,
                "selectedValues": ["有"],
                "valueDisplay": "raw",
                "label": "P",
            }
        }


# ============================================================================
# Import through the package surface
# ============================================================================


class TestCsvImport:
    def test_imported_csv_feeds_the_stores_projection(self, editor):
        headers, rows = kernel.parse_csv(",".join(HEADERS) + "\nS1,Shop,100-0001,Chiyoda 1,東京都,有\n")
        r = editor.dispatch("stores.update_content", {
            "section_id": "sec_b",
            "patch": {"storeCsv": kernel.build_store_csv(headers, rows)},
        })
        assert r.applied
        assert editor.project["stores"]["extraColumns"] == ["駐車場"]
        assert editor.project["stores"]["rows"][0]["店舗ID"] == "S1"
