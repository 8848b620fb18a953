"""Single-step product export and import."""

from __future__ import annotations

from typing import Any

from dutyjobs.errors import ExecutorError, JobValidationError
from dutyjobs.jobs.cancellation import CancellationToken
from dutyjobs.jobs.executors.base import ExecutionContext, JobExecutor, require_list, write_rows
from dutyjobs.jobs.models import Job, JobType
from dutyjobs.services.export import PREVIEW_LENGTH, ExportFormat, render_export

IMPORT_FIELDS = ("title", "asin", "price_usd", "description", "category")


class DataExportExecutor(JobExecutor):
    """Renders the selected products (all of them if none are selected)."""

    job_type = JobType.DATA_EXPORT

    def validate(self, metadata: dict[str, Any]) -> None:
        export_format = metadata.get("exportFormat", ExportFormat.CSV.value)
        if export_format not in {f.value for f in ExportFormat}:
            raise JobValidationError(f"Unsupported export format: {export_format}")
        if "productIds" in metadata:
            require_list(metadata, "productIds", "Product IDs")

    async def execute(
        self, job: Job, token: CancellationToken, context: ExecutionContext
    ) -> None:
        export_format = job.metadata.get("exportFormat", ExportFormat.CSV.value)
        product_ids = job.targets
        filters: dict[str, Any] = {"id": product_ids} if product_ids else {}
        if job.workspace_id and not product_ids:
            filters["workspace_id"] = job.workspace_id

        if token.cancelled:
            return
        products = await context.store.query("products", filters)
        if token.cancelled:
            return

        content = render_export(products, export_format)
        job.metadata.update(
            {
                "exportFormat": export_format,
                "exportSize": len(content),
                "recordCount": len(products),
                "exportPreview": content[:PREVIEW_LENGTH],
            }
        )
        await write_rows(
            context.store,
            "exports",
            [
                {
                    "job_id": job.id,
                    "workspace_id": job.workspace_id,
                    "format": export_format,
                    "record_count": len(products),
                    "content": content,
                }
            ],
            job,
        )
        context.tracker.complete_all(job)


class DataImportExecutor(JobExecutor):
    """Inserts ``importData`` rows into ``products`` with one bulk write."""

    job_type = JobType.DATA_IMPORT

    def validate(self, metadata: dict[str, Any]) -> None:
        require_list(metadata, "importData", "Import data rows")

    async def execute(
        self, job: Job, token: CancellationToken, context: ExecutionContext
    ) -> None:
        items = job.metadata.get("importData")
        if not isinstance(items, list):
            raise ExecutorError(f"Job {job.id} has no import data")
        if token.cancelled:
            return

        rows = [self._product_row(job, item) for item in items if isinstance(item, dict)]
        skipped = len(items) - len(rows)
        context.tracker.set_current(job, "import")
        written = await write_rows(context.store, "products", rows, job)
        if token.cancelled:
            return

        succeeded = len(rows) if written else 0
        job.metadata.update(
            {
                "totalRecords": len(items),
                "successfulImports": succeeded,
                "failedImports": len(items) - succeeded,
            }
        )
        if skipped or not written:
            context.tracker.items_failed(job, len(items) - succeeded)
        context.tracker.complete_all(job)

    @staticmethod
    def _product_row(job: Job, item: dict[str, Any]) -> dict[str, Any]:
        row = {key: item.get(key) for key in IMPORT_FIELDS}
        row["workspace_id"] = item.get("workspace_id") or job.workspace_id
        return row
