"""Batch conversion job module.

Reads conversion requests from a JSON file, converts them as one batch into
the reporting currency, and writes the results plus a summary.

Input file format (JSON array; invoice-shaped records are accepted too)::

    [
        {"request_id": "inv-1", "amount": 100, "from_currency": "EUR", "as_of_date": "2024-01-15"},
        {"id": "inv-2", "total_amount": 50, "currency": "GBP", "issue_date": "2024-02-01"},
        ...
    ]

Output file format::

    {"results": [...], "total": {...}, "summary": {...}, "cache": {...}, "skipped": [...]}

Args:
    requests-file: Path to the JSON requests file (read via FileSystemInterface)
    output-file:   Where to write the results (default: conversions.json)
    clear-cache:   Invalidate cached conversions before converting
"""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any

from fx_platform.config.context import ModuleConfig
from fx_platform.fx.dto import ConversionRequest
from fx_platform.fx.service import ConversionService, build_conversion_service
from fx_platform.fx.summary import calculate_converted_total, conversion_summary
from fx_platform.modules.base import AsyncModule
from fx_platform.services.filesystem.interface import FileSystemInterface
from fx_platform.services.kv_store.interface import KeyValueStore
from fx_platform.services.logger.factory import LoggerFactory
from fx_platform.services.logger.interface import LoggingInterface
from fx_platform.services.metrics.interface import MetricsInterface
from fx_platform.services.secrets.interface import SecretsInterface
from fx_platform.services.settings.interface import SettingsProvider


class ConvertModule(AsyncModule):
    log: LoggingInterface
    service: ConversionService

    def __init__(
        self,
        config: ModuleConfig,
        logger: LoggerFactory,
        secrets: SecretsInterface,
        kv: KeyValueStore,
        settings: SettingsProvider,
        fs: FileSystemInterface,
        metrics: MetricsInterface,
    ) -> None:
        self.config = config
        self.logger = logger
        self.secrets = secrets
        self.kv = kv
        self.settings = settings
        self.fs = fs
        self.metrics = metrics

    async def initialize(self) -> None:
        self.log = self.logger.create()
        self.requests_file: str = self.config.get("requests-file", "")
        self.output_file: str = self.config.get("output-file", "conversions.json")
        self.clear_cache: bool = bool(self.config.get("clear-cache", False))
        self.service = build_conversion_service(
            self.secrets, self.kv, self.settings, self.log, self.metrics
        )

    async def validate(self) -> None:
        if not self.requests_file:
            raise ValueError("requests-file is required")
        if not self.fs.exists(self.requests_file):
            raise ValueError(f"requests-file not found: {self.requests_file}")

    async def execute(self) -> int:
        records = json.loads(self.fs.read(self.requests_file).decode("utf-8"))
        if not isinstance(records, list):
            raise ValueError("Requests file must contain a JSON array")

        requests: list[ConversionRequest] = []
        skipped: list[dict[str, Any]] = []
        for index, record in enumerate(records):
            try:
                if not isinstance(record, dict):
                    raise ValueError("record is not an object")
                requests.append(ConversionRequest.from_dict(record))
            except ValueError as exc:
                self.log.warn("Skipping invalid conversion request", index=index, error=str(exc))
                skipped.append({"index": index, "error": str(exc)})

        if self.clear_cache:
            self.service.invalidate_cache()

        results = await self.service.convert_batch(requests)
        total = calculate_converted_total(results)
        summary = conversion_summary(results)
        stats = self.service.cache_stats()

        report = {
            "results": [
                {"request_id": req.request_id, **res.to_dict()}
                for req, res in zip(requests, results)
            ],
            "total": asdict(total),
            "summary": asdict(summary),
            "cache": asdict(stats),
            "skipped": skipped,
        }
        self.fs.write(self.output_file, json.dumps(report, indent=2).encode("utf-8"))

        self.log.info(
            summary.message,
            path=self.output_file,
            requests=len(requests),
            skipped=len(skipped),
            total=round(total.total_converted, 2),
            currency=total.currency,
            hit_rate=stats.hit_rate,
            cached=stats.total_cached,
        )
        return 0

    async def teardown(self) -> None:
        service = getattr(self, "service", None)
        if service is not None:
            await service.aclose()


module_class = ConvertModule
