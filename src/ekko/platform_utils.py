"""Platform detection for Ekko"""

import sys

IS_LINUX = sys.platform.startswith("linux")
