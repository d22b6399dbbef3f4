"""名称校验单元测试"""

import pytest

from bbq.core.validation import sanitize_name, validate_branch_name, validate_worktree_name


@pytest.mark.parametrize("name", ["feature-x", "v1.2", "under_score", "A9"])
def test_valid_worktree_names(name):
    assert validate_worktree_name(name) is None


@pytest.mark.parametrize("name,fragment", [
    ("", "required"),
    ("has space", "spaces"),
    ("a/b", "letters"),
    ("ü", "letters"),
    (".", "'.'"),
    ("..", "'.'"),
])
def test_invalid_worktree_names(name, fragment):
    assert fragment in validate_worktree_name(name)


@pytest.mark.parametrize("name", ["main", "feature/login", "user/x.y_z-1"])
def test_valid_branch_names(name):
    assert validate_branch_name(name) is None


@pytest.mark.parametrize("name,fragment", [
    ("", "required"),
    ("a b", "spaces"),
    ("/lead", "start or end"),
    ("trail/", "start or end"),
    ("a:b", "letters"),
])
def test_invalid_branch_names(name, fragment):
    assert fragment in validate_branch_name(name)


@pytest.mark.parametrize("raw,expected", [
    ("my repo", "my-repo"),
    ("a  @@ b", "a-b"),
    ("--x--", "x"),
    ("@@@", ""),
    ("keep.dots_and-dashes", "keep.dots_and-dashes"),
])
def test_sanitize_name(raw, expected):
    assert sanitize_name(raw) == expected
