"""Package logger shared by every task module."""

import logging
import sys

# Plain message format, analysis logs are read as run summaries
logging.basicConfig(format="%(message)s", stream=sys.stdout)

# Route `warnings.warn` calls through the same handler
logging.captureWarnings(True)

logger = logging.getLogger("pidcomb")
logger.setLevel(logging.INFO)
