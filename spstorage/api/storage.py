"""Mount administration endpoints."""

from fastapi import APIRouter

from spstorage.api.deps import TokenManager
from spstorage.core.exceptions import SPStorageError
from spstorage.core.logging import get_logger
from spstorage.core.sharepoint.adapter import SharePointMountConfig, SharePointStorage
from spstorage.schemas.common import StatusResponse
from spstorage.schemas.storage import MountOptions

logger = get_logger(__name__)

router = APIRouter(prefix="/storage", tags=["storage"])


@router.post("/test", response_model=StatusResponse)
async def test_mount(
    options: MountOptions,
    token_manager: TokenManager,
) -> StatusResponse:
    """Check that a mount configuration can reach its document library."""
    config = SharePointMountConfig.from_options(options.as_options())
    storage = SharePointStorage(config, token_manager)

    try:
        await storage.test()
    except SPStorageError as e:
        logger.warning(
            "mount_test_failed",
            site_url=config.site_url,
            library=config.library_path,
            error_type=type(e).__name__,
            error=str(e),
        )
        return StatusResponse.error(str(e), error_type=type(e).__name__)
    finally:
        await storage.close()

    return StatusResponse.success(storage_id=storage.get_id())
