# src/chefstake/api/__main__.py
from __future__ import annotations

import uvicorn

from chefstake.env import load_dotenv_if_present


def main() -> None:
    # Load .env early so CHEFSTAKE_* vars exist before anything reads them.
    load_dotenv_if_present()

    # Import after dotenv load (prevents "config read before env" surprises)
    from chefstake.api.app import create_app
    from chefstake.runtime.chef_config import apply_chef_config_to_env, load_chef_config

    cfg = load_chef_config()
    apply_chef_config_to_env(cfg)
    uvicorn.run(create_app(), host=cfg.api_host, port=int(cfg.api_port), log_level=cfg.log_level.lower())


if __name__ == "__main__":
    main()
