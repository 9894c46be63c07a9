#!/usr/bin/env python3
"""
Unit tests for config.py - layered validator configuration.
"""

import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import yaml

from registry_gate.config import ValidatorConfig
from registry_gate.errors import ConfigError


class TestValidatorConfig(unittest.TestCase):
    """Test configuration defaults, file loading and overrides."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        # Keep a config/validator.yaml in the working directory out of these tests
        self.default_patch = patch("registry_gate.config.DEFAULT_CONFIG_FILE",
                                   self.temp_dir / "absent.yaml")
        self.default_patch.start()

    def tearDown(self):
        self.default_patch.stop()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_config(self, data):
        path = self.temp_dir / "validator.yaml"
        path.write_text(yaml.safe_dump(data))
        return str(path)

    def test_defaults(self):
        config = ValidatorConfig.load(environ={})

        self.assertEqual(config.branches, ["master"])
        self.assertEqual(config.describe_command, ["swift", "package", "dump-package"])
        self.assertEqual(config.max_workers, 1)
        self.assertFalse(config.fail_on_skipped)
        self.assertIsNone(config.github_token)
        self.assertIsNone(config.temp_root)

    def test_yaml_file_overrides_defaults(self):
        config_file = self._write_config({
            "branches": ["main", "master"],
            "max_workers": 4,
            "temp_root": str(self.temp_dir / "work"),
            "describe_command": "swift package dump-package --package-path .",
        })

        config = ValidatorConfig.load(config_file, environ={})

        self.assertEqual(config.branches, ["main", "master"])
        self.assertEqual(config.max_workers, 4)
        self.assertEqual(config.temp_root, self.temp_dir / "work")
        self.assertEqual(config.describe_command[-2:], ["--package-path", "."])

    def test_environment_overrides_file(self):
        config_file = self._write_config({"max_workers": 2, "fail_on_skipped": False})

        config = ValidatorConfig.load(config_file, environ={
            "GITHUB_TOKEN": "abc123",
            "REGISTRY_GATE_WORKERS": "8",
            "REGISTRY_GATE_FAIL_ON_SKIPPED": "true",
        })

        self.assertEqual(config.github_token, "abc123")
        self.assertEqual(config.max_workers, 8)
        self.assertTrue(config.fail_on_skipped)

    def test_empty_file_uses_defaults(self):
        path = self.temp_dir / "empty.yaml"
        path.write_text("")

        self.assertEqual(ValidatorConfig.load(str(path), environ={}).max_workers, 1)

    def test_unknown_keys_rejected(self):
        config_file = self._write_config({"max_wrokers": 3})

        with self.assertRaises(ConfigError) as ctx:
            ValidatorConfig.load(config_file, environ={})
        self.assertIn("max_wrokers", str(ctx.exception))

    def test_invalid_values_rejected(self):
        for data in [{"max_workers": 0}, {"branches": []}, {"fetch_timeout": -1},
                     {"describe_command": []}, {"fail_on_skipped": "sometimes"}]:
            with self.subTest(data=data):
                with self.assertRaises(ConfigError):
                    ValidatorConfig.load(self._write_config(data), environ={})

    def test_non_mapping_file_rejected(self):
        path = self.temp_dir / "list.yaml"
        path.write_text("- a\n- b\n")

        with self.assertRaises(ConfigError):
            ValidatorConfig.load(str(path), environ={})

    def test_missing_explicit_file_rejected(self):
        with self.assertRaises(ConfigError):
            ValidatorConfig.load(str(self.temp_dir / "nope.yaml"), environ={})

    def test_single_search_path_string_is_one_path(self):
        config = ValidatorConfig.from_mapping({"search_paths": "manifests/packages.json"})

        self.assertEqual(config.search_paths, [Path("manifests/packages.json")])

    def test_search_paths_must_be_paths(self):
        with self.assertRaises(ConfigError):
            ValidatorConfig.from_mapping({"search_paths": 42})

    def test_describe_command_string_honors_quoting(self):
        config = ValidatorConfig.from_mapping({
            "describe_command": 'swift package --package-path "/tmp/my pkg" dump-package',
        })

        self.assertEqual(config.describe_command,
                         ["swift", "package", "--package-path", "/tmp/my pkg", "dump-package"])

    def test_invalid_worker_env_rejected(self):
        with self.assertRaises(ConfigError):
            ValidatorConfig.load(environ={"REGISTRY_GATE_WORKERS": "many"})


if __name__ == "__main__":
    unittest.main()
