# Lets tests import `tests.helpers` and `tests.conftest` regardless of the CWD pytest starts from.
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
