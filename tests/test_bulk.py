"""
Tests: CSV product import and export
"""

import csv
from io import BytesIO, StringIO

import pytest

from partshop.common.errors import ValidationError
from partshop.common.services.bulk_service import EXPORT_COLUMNS

HEADER = "name,description,price,make,model,year,condition,stock,category_id\n"


def csv_rows(category_id, *rows):
    lines = [HEADER]
    for name, price, year in rows:
        lines.append(f"{name},Aftermarket replacement part,{price},Chevrolet,Malibu,{year},new,5,{category_id}\n")
    return "".join(lines)


class TestImport:
    def test_valid_file_imports_every_row(self, components, category):
        content = csv_rows(category["id"], ("Fuel Pump", "89.00", 2014), ("Water Pump", "64.50", 2013))
        assert components["bulk"].import_csv(content) == {"status": "ok", "imported": 2}
        assert components["catalog"].list_products()["total"] == 2

    def test_any_bad_row_rejects_whole_file(self, components, category):
        content = csv_rows(
            category["id"],
            ("Fuel Pump", "89.00", 2014),
            ("Water Pump", "0", 1850),
            ("Fuel Pump", "12.00", 2014),
        )
        with pytest.raises(ValidationError) as exc:
            components["bulk"].import_csv(content)
        assert exc.value.errors == {
            "row 3: price": "Price must be greater than 0",
            "row 3: year": "Year must be between 1900 and next year",
            "row 4: name": "A product with this name already exists",
        }
        assert components["catalog"].list_products()["total"] == 0

    def test_unknown_category_reported_per_row(self, components, category):
        with pytest.raises(ValidationError) as exc:
            components["bulk"].import_csv(csv_rows("nope", ("Fuel Pump", "89.00", 2014)))
        assert exc.value.errors == {"row 2: category_id": "Invalid category ID"}

    def test_existing_product_name_clashes(self, components, products, category):
        with pytest.raises(ValidationError):
            components["bulk"].import_csv(csv_rows(category["id"], ("Oil Filter", "9.00", 2014)))

    def test_missing_header_rejected(self, components):
        with pytest.raises(ValidationError) as exc:
            components["bulk"].import_csv("just,some,columns\n")
        assert "file" in exc.value.errors

    def test_inserts_in_batches(self, components, category, monkeypatch):
        bulk = components["bulk"]
        monkeypatch.setattr(bulk, "_batch_size", 2)
        calls = []
        original = components["catalog"].create_products

        def spy(rows):
            calls.append(len(rows))
            return original(rows)

        monkeypatch.setattr(components["catalog"], "create_products", spy)
        rows = [(f"Part {n:03d}", "5.00", 2010) for n in range(5)]
        bulk.import_csv(csv_rows(category["id"], *rows))
        assert calls == [2, 2, 1]


class TestExport:
    def test_export_quotes_every_field(self, components, products):
        text = components["bulk"].export_csv()
        rows = list(csv.reader(StringIO(text)))
        assert rows[0] == EXPORT_COLUMNS
        assert len(rows) == 4
        assert text.splitlines()[0].startswith('"id","name"')


class TestBulkEndpoints:
    def test_upload_file(self, login, users, category):
        content = csv_rows(category["id"], ("Fuel Pump", "89.00", 2014)).encode("utf-8")
        resp = login(users["admin"]).post(
            "/admin/products/import",
            data={"file": (BytesIO(content), "products.csv")},
            content_type="multipart/form-data",
        )
        assert resp.status_code == 200
        assert resp.get_json()["imported"] == 1

    def test_download_export(self, login, users, products):
        resp = login(users["manager"]).get("/admin/products/export")
        assert resp.status_code == 200
        assert resp.mimetype == "text/csv"
        assert "attachment; filename=products-export-" in resp.headers["Content-Disposition"]

    def test_sales_member_cannot_export(self, login, users):
        assert login(users["sales_member"]).get("/admin/products/export").status_code == 302
