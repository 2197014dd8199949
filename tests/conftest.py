import sys
import warnings
from pathlib import Path

# LiveKit's native bindings emit deprecation noise on import
warnings.filterwarnings("ignore", category=DeprecationWarning, module="livekit.*")

# Ensure the project root is on sys.path so `live_room`, `tools` and `tests` resolve
PROJECT_ROOT = Path(__file__).resolve().parents[1]
root_str = str(PROJECT_ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

# Import room fixtures so they are available to all tests
from tests.fixtures.room_fixtures import *  # noqa: E402, F403
