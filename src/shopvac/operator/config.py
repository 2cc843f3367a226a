import logging
import os

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "/etc/shopvac-operator/config.yaml"
DEFAULT_REQUEUE_AFTER_SECONDS = 300
DEFAULT_RETRY_DELAY_SECONDS = 1
DEFAULT_WORKER_LIMIT = 5
DEFAULT_POSTING_ENABLED = False
DEFAULT_CLEANER_IMAGE = "quay.io/wseaton/shopvac:latest"
DEFAULT_FIELD_MANAGER = "podcleaner.kube-rt.shopvac.io"
DEFAULT_DRAIN_TIMEOUT_SECONDS = 30


class OperatorConfig:
    def __init__(self):
        self.config_path = os.environ.get(
            "SHOPVAC_OPERATOR_CONFIG_PATH", DEFAULT_CONFIG_PATH
        )
        self._config = self._load_config()

        def get_bool(value):
            return str(value).lower() in ("true", "1", "t")

        self.requeue_after_seconds = self._get_value(
            "SHOPVAC_REQUEUE_AFTER",
            "requeueAfterSeconds",
            DEFAULT_REQUEUE_AFTER_SECONDS,
            caster=float,
        )
        self.retry_delay_seconds = self._get_value(
            "SHOPVAC_RETRY_DELAY",
            "retryDelaySeconds",
            DEFAULT_RETRY_DELAY_SECONDS,
            caster=float,
        )
        self.worker_limit = self._get_value(
            "SHOPVAC_WORKER_LIMIT",
            "workerLimit",
            DEFAULT_WORKER_LIMIT,
            caster=int,
        )
        self.posting_enabled = self._get_value(
            "SHOPVAC_POSTING_ENABLED",
            "postingEnabled",
            DEFAULT_POSTING_ENABLED,
            caster=get_bool,
        )
        self.cleaner_image = self._get_value(
            "SHOPVAC_CLEANER_IMAGE",
            "cleanerImage",
            DEFAULT_CLEANER_IMAGE,
        )
        self.field_manager = self._get_value(
            "SHOPVAC_FIELD_MANAGER",
            "fieldManager",
            DEFAULT_FIELD_MANAGER,
        )
        self.drain_timeout_seconds = self._get_value(
            "SHOPVAC_DRAIN_TIMEOUT",
            "drainTimeout",
            DEFAULT_DRAIN_TIMEOUT_SECONDS,
            caster=float,
        )

    def _get_value(self, env_key, yaml_key, default, caster=None):
        val = os.environ.get(env_key, self._config.get(yaml_key, default))
        if caster:
            return caster(val)
        return val

    def _load_config(self):
        try:
            with open(self.config_path, "r") as f:
                config_data = yaml.safe_load(f)
                logger.info(f"Loaded operator configuration from {self.config_path}")
                return config_data if config_data else {}
        except FileNotFoundError:
            logger.info(
                f"Operator config file not found at {self.config_path}, using default values."
            )
            return {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(
                f"Error loading operator configuration from {self.config_path}: {e}"
            )
            return {}


# Global config instance to be used across the operator
config = OperatorConfig()
