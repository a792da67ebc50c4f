"""
Complete skindle delivery workflow: load configuration, then run the pipeline.
"""

import logging
from typing import Optional

from .config import load_config
from .errors import ConfigError, InvalidInputError
from .pipeline import deliver, validate_ebook_file, DeliveryResult, Stage

def setup_logging(verbose: bool = False):
    """Set up logging; quiet unless verbose so a successful run prints nothing"""
    level = logging.DEBUG if verbose else logging.WARNING

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()],
        force=True
    )

    return logging.getLogger(__name__)

def run_delivery(ebook_file: str, config_path: Optional[str]=None, verbose: bool=False,
                 convert: Optional[bool]=None) -> DeliveryResult:
    """Main pipeline of skindle"""
    logger = setup_logging(verbose)

    # The ebook is checked before the config so a missing file is reported as such
    try:
        validate_ebook_file(ebook_file)
    except InvalidInputError as e:
        logger.debug(f"Validation failed: {e}")
        return DeliveryResult(success=False, stage=Stage.VALIDATE, source_file=str(ebook_file), error=e)

    try:
        settings = load_config(config_path).to_pipeline_config()
    except ConfigError as e:
        logger.debug(f"Configuration failed: {e}")
        return DeliveryResult(success=False, stage=Stage.CONFIGURE, source_file=str(ebook_file), error=e)
    logger.info("Configuration loaded successfully")

    if convert is not None:
        settings.convert_before_send = convert

    result = deliver(settings, ebook_file)
    if result.success:
        logger.info(f"Delivered {result.delivered_file} to {settings.to_address}")
    else:
        logger.debug(f"Delivery stopped at {result.stage.value}")

    # Explicitly flush all logging handlers
    for handler in logging.getLogger().handlers:
        handler.flush()
    return result
