"""Item identification using a vision model.

This module provides ``VisionAnalyzer``, which turns one or more photos
into an ``AnalysisResult`` by prompting a vision model, tracing the call
as a Langfuse generation and parsing the structured reply.

Example:
    >>> from vintagevision.analysis.analyzer import VisionAnalyzer
    >>> analyzer = VisionAnalyzer()
    >>> result = analyzer.identify("https://example.com/chair.jpg")
    >>> print(result.name, result.confidence)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from vintagevision.analysis.images import ImageLoadError, ImageSource, load_image
from vintagevision.analysis.llm_client import LLMClient, LLMError
from vintagevision.analysis.models import AnalysisResult, DomainExpert
from vintagevision.analysis.prompts import (
    build_identification_prompt,
    estimate_prompt_tokens,
    get_system_prompt,
)
from vintagevision.analysis.response_parser import ResponseParseError, parse_analysis_response
from vintagevision.config import AppConfig, get_config
from vintagevision.observability.tracing import get_tracer, traced

if TYPE_CHECKING:
    from vintagevision.evaluation.ground_truth import GroundTruthItem

logger = logging.getLogger(__name__)


class AnalysisError(Exception):
    """Raised when an item cannot be identified.

    Attributes:
        message: Error description.
        source: The image reference that failed, if known.
        cause: The underlying exception that caused this error.
    """

    def __init__(
        self,
        message: str,
        source: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.source = source
        self.cause = cause


class VisionAnalyzer:
    """Identifies antiques and collectibles from photos.

    The pipeline:
    1. Resolves image references (URLs, data URLs, local files)
    2. Builds the identification prompt
    3. Calls the vision model with retries and tracing
    4. Parses the reply into an AnalysisResult

    Attributes:
        client: Vision model client.
        config: Application configuration.
        image_dir: Base directory for relative image paths.
    """

    def __init__(
        self,
        client: LLMClient | None = None,
        config: AppConfig | None = None,
        image_dir: Path | str | None = None,
    ) -> None:
        """Initialize the analyzer.

        Args:
            client: Vision model client. Creates one from config if not provided.
            config: Application configuration. Loads from environment if not provided.
            image_dir: Base directory for relative image paths. Defaults to
                ``config.image_dir``.
        """
        self.config = config or get_config()
        self.client = client or LLMClient(app_config=self.config)
        resolved_dir = image_dir if image_dir is not None else self.config.image_dir
        self.image_dir = Path(resolved_dir) if resolved_dir is not None else None

    def _load_images(self, images: Sequence[str | Path]) -> list[ImageSource]:
        if not images:
            raise AnalysisError("At least one image is required")
        try:
            return [load_image(image, image_dir=self.image_dir) for image in images]
        except ImageLoadError as e:
            raise AnalysisError(str(e), source=e.source, cause=e) from e

    @traced(name="identify_item", tags=["analysis"])
    def identify(
        self,
        image: str | Path | Sequence[str | Path],
        domain_hint: DomainExpert | None = None,
        notes: str | None = None,
    ) -> AnalysisResult:
        """Identify the item shown in one or more photos.

        Args:
            image: Image reference or list of references.
            domain_hint: Likely domain, used to add specialist notes.
            notes: Free-text context from the owner.

        Returns:
            Parsed AnalysisResult.

        Raises:
            AnalysisError: If images cannot be loaded, the model call fails
                or the reply cannot be parsed.
        """
        refs = [image] if isinstance(image, (str, Path)) else list(image)
        sources = self._load_images(refs)
        label = ", ".join(s.label for s in sources)

        prompt = build_identification_prompt(
            image_count=len(sources), domain_hint=domain_hint, notes=notes
        )
        logger.info(
            f"Identifying item from {len(sources)} image(s) "
            f"(provider={self.client.provider}, model={self.client.config.model})"
        )

        generation = get_tracer().generation(
            name="vision_identification",
            model=self.client.config.model,
            input=prompt,
            metadata={
                "images": [s.label for s in sources],
                "domain_hint": domain_hint.value if domain_hint else None,
                "prompt_tokens_estimate": estimate_prompt_tokens(prompt),
            },
        )

        try:
            response = self.client.complete_vision(prompt, sources, system=get_system_prompt())
        except LLMError as e:
            generation.update(level="ERROR", status_message=str(e))
            generation.end()
            logger.error(f"Vision model error for {label}: {e}")
            raise AnalysisError(f"LLM error: {e}", source=label, cause=e) from e

        generation.update(
            output=response.content,
            usage_details={
                "input": response.input_tokens,
                "output": response.output_tokens,
            },
            metadata={"latency_ms": response.latency_ms, "provider": response.provider},
        )
        generation.end()

        try:
            result = parse_analysis_response(response.content)
        except ResponseParseError as e:
            logger.error(f"Could not parse vision response for {label}: {e.reason}")
            raise AnalysisError(
                f"Unparseable response: {e.reason}", source=label, cause=e
            ) from e

        logger.info(
            f"Identified {result.name!r} (confidence={result.confidence:.2f}, "
            f"tokens={response.total_tokens}, latency={response.latency_ms:.0f}ms)"
        )
        return result

    def analyze_item(self, item: GroundTruthItem) -> AnalysisResult:
        """Identify a ground truth item from its reference photo (no domain hint)."""
        return self.identify(item.image_url)
