"""Human-readable progress and end-of-run statistics."""
from __future__ import annotations

from typing import List, Sequence

from .ledger import CITY, PROVINCE, LedgerEntry, ResultLedger, Summary, success_rate

ERROR_PREVIEW_LIMIT = 3
RULE = "=" * 60

FINAL_TEMPLATE = """{rule}
Crawl finished - final statistics
{rule}

Overall:
   Provinces: {province_success}/{province_total} succeeded
   Cities: {city_success}/{city_total} succeeded
   Success rate: {rate:.1f}% ({success}/{attempted} attempted units)

Data directory: {data_dir}
Layout: {data_dir}/{{provinceCode}}/geo.json (provinces, municipalities)
        {data_dir}/{{provinceCode}}/{{cityCode}}/geo.json (cities)
{errors_block}
Code normalisation:
   source codes are 12 digits (e.g. 420100000000)
   API codes are 6 digits (e.g. 420100), trailing 000000 removed"""


def render_progress(current: int, total: int, ledger: ResultLedger) -> str:
    percentage = (current / total * 100.0) if total else 100.0
    _, success, failed = ledger.totals()
    line = f"Progress: {current}/{total} ({percentage:.1f}%) | ok={success} failed={failed}"
    entries = ledger.entries
    if entries:
        last = entries[-1]
        line += f" | last error: {last.kind}: {last.name} - {last.error_message}"
    return line


def _preview(entries: Sequence[LedgerEntry], title: str, *, with_province: bool) -> List[str]:
    if not entries:
        return []
    lines = [f"   {title} ({len(entries)}):"]
    for entry in entries[:ERROR_PREVIEW_LIMIT]:
        prefix = f"{entry.province_name} > " if with_province and entry.province_name else ""
        lines.append(f"     - {prefix}{entry.name} ({entry.code}): {entry.error_message}")
    if len(entries) > ERROR_PREVIEW_LIMIT:
        lines.append(f"     ... and {len(entries) - ERROR_PREVIEW_LIMIT} more")
    return lines


def render_final_statistics(
    summary: Summary, entries: Sequence[LedgerEntry], data_dir: str
) -> str:
    errors_block = ""
    if entries:
        lines = ["", f"Errors: {len(entries)} recorded"]
        lines += _preview(
            [e for e in entries if e.kind == PROVINCE], "province errors", with_province=False
        )
        lines += _preview(
            [e for e in entries if e.kind == CITY], "city errors", with_province=True
        )
        errors_block = "\n".join(lines) + "\n"
    return FINAL_TEMPLATE.format(
        rule=RULE,
        province_success=summary.provinces["success"],
        province_total=summary.provinces["total"],
        city_success=summary.cities["success"],
        city_total=summary.cities["total"],
        rate=success_rate(summary.success, summary.attempted),
        success=summary.success,
        attempted=summary.attempted,
        data_dir=data_dir,
        errors_block=errors_block,
    )
