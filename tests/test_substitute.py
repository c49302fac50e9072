"""Tests for manifest substitution."""

import pytest
import yaml

from envkustomize.exceptions import SubstitutionException
from envkustomize.substitute import (
    expand_all,
    expand_container_envs,
    expand_placeholders,
)

ENV = {
    "NFS_SERVER_IP": "10.0.0.5",
    "APP_HOST": "example.com",
    "APP_GREETING": 'say "hi"',
    "OTHER": "value",
}


def test_expand_placeholders() -> None:
    """Test placeholders with and without surrounding whitespace."""
    text = "server: ${{{ NFS_SERVER_IP }}}\nhost: ${{{APP_HOST}}}\n"
    assert expand_placeholders(text, ENV) == "server: 10.0.0.5\nhost: example.com\n"


def test_other_syntax_untouched() -> None:
    """Test flux and shell style variables are left as is."""
    text = "a: ${APP_HOST}\nb: $APP_HOST\nc: ${{ APP_HOST }}\n"
    assert expand_placeholders(text, ENV) == text


def test_missing_variable() -> None:
    """Test a placeholder naming an unset variable."""
    with pytest.raises(SubstitutionException, match=r"\$\{\{\{ MISSING \}\}\} is not set"):
        expand_placeholders("value: ${{{ MISSING }}}", ENV)


def test_placeholder_in_value() -> None:
    """Test a value that itself contains a placeholder."""
    env = {"NESTED": "${{{ APP_HOST }}}"}
    with pytest.raises(SubstitutionException, match="not replaced"):
        expand_placeholders("value: ${{{ NESTED }}}", env)


def test_expand_container_envs() -> None:
    """Test expanding a container env list from a prefix."""
    text = """containers:
  - name: app
    env:
      - name: ${{{env-expand://APP_}}}
        value: ${{{env-expand://APP_}}}
      - name: STATIC
        value: "1"
"""
    result = expand_container_envs(text, ENV)
    assert result == """containers:
  - name: app
    env:
      - name: APP_GREETING
        value: "say \\"hi\\""
      - name: APP_HOST
        value: "example.com"
      - name: STATIC
        value: "1"
"""
    doc = yaml.safe_load(result)
    assert doc["containers"][0]["env"] == [
        {"name": "APP_GREETING", "value": 'say "hi"'},
        {"name": "APP_HOST", "value": "example.com"},
        {"name": "STATIC", "value": "1"},
    ]


def test_expand_container_envs_no_matches() -> None:
    """Test a prefix with no matching variables removes the entry."""
    text = "env:\n- name: ${{{env-expand://NONE_}}}\n  value: ${{{env-expand://NONE_}}}\n"
    assert expand_container_envs(text, ENV) == "env:\n"


def test_expand_container_envs_without_value_line() -> None:
    """Test a name placeholder without the matching value line is kept."""
    text = "env:\n- name: ${{{env-expand://APP_}}}\n  value: static\n"
    assert expand_container_envs(text, ENV) == text
    with pytest.raises(SubstitutionException, match="env-expand://APP_"):
        expand_all(text, ENV)


def test_expand_all() -> None:
    """Test container env expansion combined with placeholders."""
    text = """spec:
  nfs:
    server: ${{{ NFS_SERVER_IP }}}
  env:
  - name: ${{{env-expand://OTHER}}}
    value: ${{{env-expand://OTHER}}}
"""
    assert yaml.safe_load(expand_all(text, ENV)) == {
        "spec": {
            "nfs": {"server": "10.0.0.5"},
            "env": [{"name": "OTHER", "value": "value"}],
        }
    }
