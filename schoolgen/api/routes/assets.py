import logging

from fastapi import APIRouter, Depends

from schoolgen.api.deps import get_asset_generator
from schoolgen.api.models import AudioRequest, AudioResponse, ImageRequest, ImageResponse
from schoolgen.services.assets import AssetGenerator

router = APIRouter()
logger = logging.getLogger("schoolgen.api.routes.assets")

AUDIO_READY_MESSAGE = "音声を生成しました"
AUDIO_PENDING_MESSAGE = "音声は準備中です"


@router.post("/image", response_model=ImageResponse)
async def generate_image(request: ImageRequest, assets: AssetGenerator = Depends(get_asset_generator)) -> ImageResponse:  # noqa: B008
  """Generate one image; provider failures come back as a placeholder URL."""
  url = await assets.generate_image(request.prompt, request.imageType)
  return ImageResponse(url=url)


@router.post("/audio", response_model=AudioResponse)
async def generate_audio(request: AudioRequest, assets: AssetGenerator = Depends(get_asset_generator)) -> AudioResponse:  # noqa: B008
  url = await assets.generate_audio(request.lyrics, request.style, request.title)
  return AudioResponse(url=url, message=AUDIO_READY_MESSAGE if url else AUDIO_PENDING_MESSAGE)
