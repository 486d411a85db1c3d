"""
Image generation and LoRA training through FAL.ai.
"""

from typing import Any, Dict, Optional

import fal_client

from inflio.config import settings
from inflio.errors import AIError
from inflio.utils.logging import get_logger

logger = get_logger(__name__)

ASPECT_RATIO_SIZES = {
    "1:1": "square_hd",
    "4:5": "portrait_4_3",
    "9:16": "portrait_16_9",
    "16:9": "landscape_16_9",
}

ASPECT_RATIO_DIMENSIONS = {
    "1:1": "1080x1080",
    "4:5": "1080x1350",
    "9:16": "1080x1920",
    "16:9": "1920x1080",
}


class ImageService:
    """Service for generating post images and training persona LoRAs."""

    def __init__(self, client: Optional[Any] = None):
        self._client = client

    @property
    def is_configured(self) -> bool:
        return self._client is not None or bool(settings.fal_key)

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = fal_client.AsyncClient(key=settings.fal_key)
        return self._client

    def model_name(self, lora_url: Optional[str] = None) -> str:
        return settings.fal_lora_image_model if lora_url else settings.fal_image_model

    async def generate_with_flux(
        self,
        prompt: str,
        aspect_ratio: str = "16:9",
        lora_url: Optional[str] = None,
        lora_scale: float = 1.0,
    ) -> str:
        """
        Generate one image and return its URL.

        With ``lora_url`` the persona LoRA model is used so the subject
        appears in the image.
        """
        client = self._get_client()
        arguments: Dict[str, Any] = {
            "prompt": prompt,
            "image_size": ASPECT_RATIO_SIZES.get(aspect_ratio, "landscape_16_9"),
            "num_images": 1,
            "enable_safety_checker": True,
        }
        model = self.model_name(lora_url)
        if lora_url:
            arguments["loras"] = [{"path": lora_url, "scale": lora_scale}]

        logger.info("Generating image", model=model, aspect_ratio=aspect_ratio)
        result = await client.subscribe(model, arguments=arguments)

        images = (result or {}).get("images") or []
        if not images or not images[0].get("url"):
            raise AIError("No image returned by image model", retryable=False)
        return images[0]["url"]

    async def train_lora(
        self,
        images_data_url: str,
        trigger_phrase: str,
        learning_rate: float = 0.00009,
        steps: int = 2500,
        multiresolution_training: bool = True,
        subject_crop: bool = True,
        create_masks: bool = False,
    ) -> Dict[str, Any]:
        """Train a portrait LoRA; returns the trainer result with the weights URL."""
        client = self._get_client()

        def on_queue_update(update):
            if isinstance(update, fal_client.InProgress):
                for log in update.logs or []:
                    logger.info("LoRA training progress", message=log.get("message"))

        logger.info("Starting LoRA training", trigger_phrase=trigger_phrase, steps=steps)
        result = await client.subscribe(
            settings.fal_lora_training_model,
            arguments={
                "images_data_url": images_data_url,
                "trigger_phrase": trigger_phrase,
                "learning_rate": learning_rate,
                "steps": steps,
                "multiresolution_training": multiresolution_training,
                "subject_crop": subject_crop,
                "create_masks": create_masks,
            },
            with_logs=True,
            on_queue_update=on_queue_update,
        )
        if not result or not (result.get("diffusers_lora_file") or {}).get("url"):
            raise AIError("LoRA training returned no weights", retryable=False)
        return result


image_service = ImageService()
