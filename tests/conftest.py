import os
import sys

# make the service packages importable from a plain checkout
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.append(os.path.join(ROOT, 'services/ema_engine_py'))
sys.path.append(os.path.join(ROOT, 'services/ema_watcher_py'))
