import csv
from datetime import date
from io import StringIO
from typing import Dict, List

from ..errors import ValidationError
from .catalog_service import CatalogService, validate_product
from .logging import log_event


EXPORT_COLUMNS = [
    "id", "name", "slug", "description", "price", "make", "model", "year",
    "condition", "stock", "category_id",
]
IMPORT_BATCH_SIZE = 100


class BulkProductService:
    """CSV import/export for the product catalogue.

    Imported rows go through the same rules as single product edits. The
    whole file is validated before anything is written; on any row error
    nothing is inserted.
    """

    def __init__(self, catalog: CatalogService, batch_size: int = IMPORT_BATCH_SIZE):
        self._catalog = catalog
        self._batch_size = batch_size

    def import_csv(self, content: str) -> Dict:
        reader = csv.DictReader(StringIO(content))
        if not reader.fieldnames or "name" not in reader.fieldnames:
            raise ValidationError({"file": "CSV must have a header row including 'name'"})

        known_categories = self._catalog.category_ids()
        taken_slugs = self._catalog.existing_slugs()
        errors: Dict[str, str] = {}
        rows: List[Dict] = []
        # header is line 1
        for line_no, raw in enumerate(reader, start=2):
            try:
                data = validate_product(raw)
            except ValidationError as exc:
                for field, message in exc.errors.items():
                    errors[f"row {line_no}: {field}"] = message
                continue
            if data["category_id"] not in known_categories:
                errors[f"row {line_no}: category_id"] = "Invalid category ID"
                continue
            if data["slug"] in taken_slugs:
                errors[f"row {line_no}: name"] = "A product with this name already exists"
                continue
            taken_slugs.add(data["slug"])
            rows.append(data)

        if errors:
            raise ValidationError(errors, message="Import rejected; no products were added")
        if not rows:
            raise ValidationError({"file": "The file contains no products"})

        imported = 0
        for start in range(0, len(rows), self._batch_size):
            imported += self._catalog.create_products(rows[start:start + self._batch_size])
        log_event("info", "products.imported", count=imported)
        return {"status": "ok", "imported": imported}

    def export_csv(self) -> str:
        output = StringIO()
        writer = csv.writer(output, quoting=csv.QUOTE_ALL)
        writer.writerow(EXPORT_COLUMNS)
        for product in self._catalog.export_rows():
            writer.writerow(["" if product.get(col) is None else str(product.get(col)) for col in EXPORT_COLUMNS])
        return output.getvalue()

    @staticmethod
    def export_filename() -> str:
        return f"products-export-{date.today().isoformat()}.csv"
