"""
InsightFace-based implementation of the embedding provider.

This module loads an InsightFace model pack once per process and turns encoded
images into face embeddings for the matching engine.

Key Features:
    - Guarded, single initialization with a remembered failure
    - Detection confidence filtering
    - Large image downscaling before detection
    - Embedding dimensionality check against the deployment setting

Example:
    ```python
    provider = InsightFaceEmbeddingProvider()
    await provider.initialize()

    with open("image.jpg", "rb") as f:
        embeddings = list(await provider.extract_embeddings(f.read()))
    ```

Note:
    This implementation uses CPU inference. The model pack must produce
    embeddings of EMBEDDING_DIMENSION length for this deployment.
"""
import asyncio
import math
from typing import Any, Iterator, List, Optional

import cv2
import numpy as np

from roster_verify.core.config import settings
from roster_verify.core.exceptions import DimensionMismatchError, ProviderUnavailableError
from roster_verify.core.logging import get_logger
from roster_verify.core.utils.image import bytes_to_numpy_array
from roster_verify.domain.interfaces.recognition.embedding_provider import EmbeddingProvider

logger = get_logger(__name__)


class InsightFaceEmbeddingProvider(EmbeddingProvider):
    """
    InsightFace-based embedding provider.

    The model is loaded at most once. If loading fails, the failure is kept
    and every later call raises ProviderUnavailableError immediately instead
    of retrying the expensive load per request.

    Attributes:
        model_name: InsightFace model pack name
        dimension: Expected embedding length
        min_confidence: Minimum detection score for a face to be used
    """

    def __init__(
        self,
        model_name: Optional[str] = None,
        dimension: Optional[int] = None,
        min_confidence: Optional[float] = None,
        input_size: Optional[int] = None,
    ) -> None:
        """Configure the provider; the model itself is loaded by ``initialize``."""
        self.model_name = model_name or settings.MODEL_NAME
        self.dimension = dimension or settings.EMBEDDING_DIMENSION
        self.min_confidence = settings.MIN_FACE_CONFIDENCE if min_confidence is None else min_confidence
        self.input_size = input_size or settings.DETECTOR_INPUT_SIZE
        self._model: Optional[Any] = None
        self._failure: Optional[str] = None
        self._lock = asyncio.Lock()

    @property
    def is_ready(self) -> bool:
        return self._model is not None

    @property
    def failure(self) -> Optional[str]:
        """Why initialization failed, if it did."""
        return self._failure

    def _load_model(self) -> Any:
        """Load and prepare the InsightFace model pack (blocking)."""
        from insightface.app import FaceAnalysis

        model = FaceAnalysis(
            name=self.model_name,
            root=settings.MODEL_CACHE_DIR,
            allowed_modules=["detection", "recognition"],
            providers=["CPUExecutionProvider"],
        )
        model.prepare(
            ctx_id=0,
            det_thresh=self.min_confidence,
            det_size=(self.input_size, self.input_size),
        )
        return model

    def _check_embedding_size(self, model: Any) -> None:
        """Reject a model pack whose embeddings do not have the deployment dimension."""
        size = int(model.models["recognition"].output_shape[-1])
        if size != self.dimension:
            raise DimensionMismatchError(
                f"Model {self.model_name} produces {size}-dimensional embeddings, "
                f"EMBEDDING_DIMENSION is {self.dimension}",
                details={"expected": self.dimension, "actual": size},
            )

    async def initialize(self) -> None:
        """Load the model once; remember and re-raise a failure."""
        async with self._lock:
            if self._model is not None:
                return
            if self._failure is not None:
                raise ProviderUnavailableError(
                    "Embedding provider is unavailable",
                    details={"reason": self._failure},
                )

            logger.info("Loading face recognition model", model_name=self.model_name)
            try:
                model = await asyncio.to_thread(self._load_model)
                self._check_embedding_size(model)
                self._model = model
            except Exception as e:
                self._failure = str(e) or type(e).__name__
                logger.error(
                    "Face recognition model failed to load",
                    model_name=self.model_name,
                    error=self._failure,
                    exc_info=True,
                )
                raise ProviderUnavailableError(
                    "Embedding provider is unavailable",
                    details={"reason": self._failure},
                ) from e

            logger.info("Face recognition model loaded", model_name=self.model_name)

    def _load_and_validate_image(self, image_bytes: bytes) -> np.ndarray:
        """Decode the image and downscale it if it is too large."""
        img = bytes_to_numpy_array(image_bytes)

        height, width = img.shape[:2]
        pixels = width * height

        if pixels > settings.MAX_IMAGE_PIXELS:
            scale = math.sqrt(settings.MAX_IMAGE_PIXELS / pixels)
            new_width = int(width * scale)
            new_height = int(height * scale)

            logger.info(
                "Resizing large image",
                original_size=(width, height),
                new_size=(new_width, new_height)
            )

            img = cv2.resize(
                img,
                (new_width, new_height),
                interpolation=cv2.INTER_AREA
            )

        return img

    def _detect(self, image: np.ndarray) -> List[Any]:
        faces = self._model.get(image)
        return sorted(faces, key=lambda face: float(face.det_score), reverse=True)

    def _iter_embeddings(self, faces: List[Any]) -> Iterator[np.ndarray]:
        for face in faces:
            if float(face.det_score) < self.min_confidence:
                logger.debug("Skipping low quality face detection", det_score=float(face.det_score))
                continue

            embedding = np.asarray(face.normed_embedding, dtype=np.float64).ravel()
            if embedding.shape[0] != self.dimension:
                raise DimensionMismatchError(
                    f"Model {self.model_name} produced {embedding.shape[0]}-dimensional embeddings, "
                    f"deployment expects {self.dimension}",
                    details={"expected": self.dimension, "actual": int(embedding.shape[0])},
                )
            yield embedding

    async def extract_embeddings(self, image_bytes: bytes) -> Iterator[np.ndarray]:
        """Detect faces and return a lazy iterator over their embeddings, best first."""
        await self.initialize()

        img = self._load_and_validate_image(image_bytes)
        faces = await asyncio.to_thread(self._detect, img)

        logger.debug(
            "Face detection results",
            faces_found=len(faces),
            image_shape=img.shape,
        )

        return self._iter_embeddings(faces)
