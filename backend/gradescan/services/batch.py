"""
Batch extraction: fan files out to the extraction service in fixed-size
chunks, reusing cached results, and collect per-file successes and failures.
"""

import asyncio
import time
from typing import Awaitable, Callable, List, Optional, Union

from gradescan.config import logger
from gradescan.errors import ConfigurationError
from gradescan.models import (
    BatchExtractionReport,
    ExtractionResult,
    FileError,
    FileInput,
    ProcessingStats,
)
from gradescan.services.cache import ContentAddressedCache
from gradescan.services.extraction import DocumentExtractionService
from gradescan.utils.concurrency import chunked, new_conversion_semaphore

DEFAULT_CHUNK_SIZE = 3

ProgressCallback = Callable[[int, int], Union[None, Awaitable[None]]]


def make_file_id(index: int, file: FileInput) -> str:
    """Batch-unique identity of an upload; names alone can repeat."""
    return f"{index}:{file.file_name}"


class BatchExtractionCoordinator:

    def __init__(
        self,
        extraction_service: Optional[DocumentExtractionService],
        cache: Optional[ContentAddressedCache] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self.extraction_service = extraction_service
        self.cache = cache
        self.chunk_size = chunk_size

    def ensure_configured(self):
        """Raise ConfigurationError if the pipeline cannot run at all."""
        service = self.extraction_service
        if service is None:
            raise ConfigurationError("No extraction service configured")
        if service.ocr is None:
            raise ConfigurationError("No OCR capability configured")

    async def _process_file(self, file: FileInput, file_id: str, conversion_limit: asyncio.Semaphore) -> tuple:
        """
        Return (result, from_cache). Exceptions propagate to the gather below.
        The result is stamped with this upload's name and batch-unique file_id,
        since a cached result may have come from another upload with the same content.
        """
        file_hash = None
        result = None
        if self.cache is not None:
            file_hash = self.cache.generate_file_hash(file.raw_bytes)
            cached = await self.cache.get(file_hash)
            if cached is not None:
                result = ExtractionResult.model_validate(cached)

        from_cache = result is not None
        if not from_cache:
            result = await self.extraction_service.extract(file, conversion_limit=conversion_limit)
            if self.cache is not None:
                await self.cache.put(
                    file_hash,
                    file_name=file.file_name,
                    file_size=file.file_size,
                    result=result.model_dump(mode="json"),
                    metadata={"processing_methods": result.processing_methods},
                )
        return result.model_copy(update={"file_name": file.file_name, "file_id": file_id}), from_cache

    async def process_batch(
        self,
        files: List[FileInput],
        progress_callback: Optional[ProgressCallback] = None,
    ) -> BatchExtractionReport:
        """
        Process all files; never raises for per-file failures.
        Chunk i+1 starts only after every file in chunk i has settled.
        """
        self.ensure_configured()

        start = time.monotonic()
        results: List[ExtractionResult] = []
        errors: List[FileError] = []
        cached_files = 0
        total_chunks = (len(files) + self.chunk_size - 1) // self.chunk_size
        done = 0
        # Created here so it belongs to the loop running this batch
        conversion_limit = new_conversion_semaphore()
        indexed = list(enumerate(files))

        logger.info(f"=== BATCH EXTRACTION START === Processing {len(files)} files")

        for chunk_idx, chunk in enumerate(chunked(indexed, self.chunk_size)):
            logger.info(f"Processing chunk {chunk_idx + 1} of {total_chunks}")
            outcomes = await asyncio.gather(
                *(self._process_file(f, make_file_id(i, f), conversion_limit) for i, f in chunk),
                return_exceptions=True,
            )
            for (_, file), outcome in zip(chunk, outcomes):
                if isinstance(outcome, BaseException):
                    if not isinstance(outcome, Exception):
                        raise outcome
                    logger.error(f"Error processing {file.file_name}: {outcome}")
                    errors.append(FileError(file_name=file.file_name, error=str(outcome) or type(outcome).__name__))
                    continue
                result, from_cache = outcome
                results.append(result)
                if from_cache:
                    cached_files += 1

            done += len(chunk)
            if progress_callback is not None:
                maybe_awaitable = progress_callback(done, len(files))
                if asyncio.iscoroutine(maybe_awaitable):
                    await maybe_awaitable

        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            f"Batch processing completed: {len(results)} successful, {len(errors)} failed "
            f"({cached_files} from cache), {elapsed_ms}ms"
        )

        return BatchExtractionReport(
            results=results,
            errors=errors,
            processing_stats=ProcessingStats(
                total_files=len(files),
                successful_files=len(results),
                failed_files=len(errors),
                cached_files=cached_files,
                total_processing_time_ms=elapsed_ms,
            ),
        )
