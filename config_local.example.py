# config_local.example.py

"""
Example local overrides.

Usage:
  1) Copy this file to `config_local.py`
  2) Adjust values for your machine
  3) Never commit `config_local.py` (it is gitignored)

Prefer `.env` for secrets. This file should contain only safe overrides.
"""

# Example: turn off the offline GET cache while debugging the network layer
# OFFLINE_CACHE = False

# Example: keep the local backend somewhere else
# LOCAL_STORE_PATH = "/tmp/taskflow/local_store.json"
