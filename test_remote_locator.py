#!/usr/bin/env python3
"""
Tests for clone address construction and name validation.
"""

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from basecamp.workspace import ConnectionMode, locate
from basecamp.workspace.models import validate_name


class TestLocate(unittest.TestCase):

    def test_https_address(self):
        self.assertEqual(locate(ConnectionMode.HTTPS, "acme", "app"), "https://github.com/acme/app")

    def test_ssh_address(self):
        self.assertEqual(locate(ConnectionMode.SSH, "acme", "app"), "git@github.com:acme/app.git")

    def test_custom_host(self):
        self.assertEqual(
            locate(ConnectionMode.SSH, "acme", "app", host="git.example.com"),
            "git@git.example.com:acme/app.git"
        )
        self.assertEqual(
            locate(ConnectionMode.HTTPS, "acme", "app", host="git.example.com"),
            "https://git.example.com/acme/app"
        )

    def test_is_deterministic(self):
        first = locate(ConnectionMode.SSH, "acme", "app")
        second = locate(ConnectionMode.SSH, "acme", "app")
        self.assertEqual(first, second)

    def test_empty_components_rejected(self):
        with self.assertRaises(ValueError):
            locate(ConnectionMode.HTTPS, "", "app")
        with self.assertRaises(ValueError):
            locate(ConnectionMode.HTTPS, "acme", "")


class TestConnectionMode(unittest.TestCase):

    def test_parse(self):
        self.assertIs(ConnectionMode.parse("ssh"), ConnectionMode.SSH)
        self.assertIs(ConnectionMode.parse(" HTTPS "), ConnectionMode.HTTPS)
        self.assertIs(ConnectionMode.parse(ConnectionMode.SSH), ConnectionMode.SSH)

    def test_parse_unknown(self):
        with self.assertRaises(ValueError):
            ConnectionMode.parse("git")


class TestValidateName(unittest.TestCase):

    def test_accepts_ordinary_names(self):
        for name in ["app", "my-repo", "repo.js", "Repo_2"]:
            with self.subTest(name=name):
                self.assertIsNone(validate_name(name, "Repository"))

    def test_rejects_unsafe_names(self):
        for name in ["", "   ", "a/b", "a\\b", ".", "..", ".basecamp", "trailing "]:
            with self.subTest(name=name):
                self.assertIsNotNone(validate_name(name, "Repository"))


if __name__ == "__main__":
    unittest.main()
