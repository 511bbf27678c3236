import sys
import os

# Add project root to sys.path so tests can import top-level modules like 'ingest', 'scoring', 'analyzer', etc.
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# tests share fixture builders from tests/fakes.py
TESTS_DIR = os.path.dirname(os.path.abspath(__file__))
if TESTS_DIR not in sys.path:
    sys.path.insert(0, TESTS_DIR)
