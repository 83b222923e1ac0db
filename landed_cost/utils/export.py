"""Export functionality for quotes."""

from __future__ import annotations

import csv
import json
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl.utils import get_column_letter

from landed_cost.core.models import Quote


def _money(value: Decimal | None) -> float | str:
    return float(value) if value is not None else ""


class Exporter:
    """Exports quotes to various formats."""

    @staticmethod
    def quotes_to_dict(quotes: list[Quote]) -> list[dict[str, Any]]:
        """Flatten quotes into one row per product for export."""
        rows = []
        for q in quotes:
            dims = q.carton.dimensions
            row = {
                "Name": q.product.name,
                "Retailer": q.product.retailer,
                "URL": q.product.url,
                "Item Price": _money(q.product.price),
                "Brand": q.classification.brand.value,
                "Category": q.classification.category.value,
                "Policy": q.policy.value,
                # Carton
                "Boxes": q.carton.boxes,
                "Carton (in)": f"{dims.length} x {dims.width} x {dims.height}",
                "Cubic Feet": float(q.carton.cubic_feet),
                "Carton Notes": q.carton.notes,
                # Duty
                "Duty %": float(q.duty.duty_pct),
                "Duty Source": q.duty.source.value,
            }

            if q.fees is not None:
                row.update(
                    {
                        "Freight": float(q.fees.freight),
                        "Customs": float(q.fees.customs),
                        "Handling": float(q.fees.handling),
                        "Margin": float(q.fees.margin),
                        "Card Fee": float(q.fees.card_fee),
                        "Subtotal": float(q.fees.subtotal),
                        "Fees Total": float(q.fees.total_with_margin),
                    }
                )
            if q.retail is not None:
                row.update(
                    {
                        "Freight": float(q.retail.freight),
                        "Duty + Wharfage": float(q.retail.duty_wharfage),
                        "Card Fee": float(q.retail.card_fee),
                        "Margin": float(q.retail.margin),
                        "Shipping & Handling": float(q.retail.shipping_handling),
                        "Retail Before Tax": float(q.retail.retail_before_tax),
                        "Tax": float(q.retail.tax),
                        "Final Retail": float(q.retail.final_retail),
                    }
                )

            # Guardrail
            g = q.guardrail
            row.update(
                {
                    "Implied Multiplier": round(float(g.implied_multiplier), 4) if g.implied_multiplier is not None else "",
                    "Fallback Used": "Yes" if g.fallback_used else "No",
                    "Final Total": float(q.final_total),
                }
            )
            rows.append(row)

        return rows

    @staticmethod
    def quotes_to_json(quotes: list[Quote], indent: int | None = 2) -> str:
        """Serialize full quote records to JSON."""
        return json.dumps([q.as_dict() for q in quotes], indent=indent)

    @classmethod
    def export_to_csv(
        cls,
        quotes: list[Quote],
        file_path: str | Path,
    ) -> None:
        """Export quotes to CSV."""
        rows = cls.quotes_to_dict(quotes)

        if not rows:
            return

        # Policies add different columns; keep first-seen order
        fieldnames: list[str] = []
        for row in rows:
            fieldnames.extend(k for k in row if k not in fieldnames)

        path = Path(file_path)
        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames, restval="")
            writer.writeheader()
            writer.writerows(rows)

    @classmethod
    def export_to_xlsx(
        cls,
        quotes: list[Quote],
        file_path: str | Path,
    ) -> None:
        """Export quotes to Excel."""
        rows = cls.quotes_to_dict(quotes)

        if not rows:
            return

        df = pd.DataFrame(rows)

        path = Path(file_path)
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="Quotes")

            # Auto-adjust column widths
            worksheet = writer.sheets["Quotes"]
            for i, col in enumerate(df.columns):
                max_length = max(
                    # Mixed policies leave NaN cells
                    df[col].map(lambda v: len(str(v)) if pd.notna(v) else 0).max(),
                    len(col)
                )
                worksheet.column_dimensions[get_column_letter(i + 1)].width = min(max_length + 2, 50)

    @classmethod
    def generate_filename(cls, policy: str, extension: str) -> str:
        """Generate a timestamped filename for export."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return f"quotes_{policy.lower()}_{timestamp}.{extension}"
