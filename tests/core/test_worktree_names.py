"""城市名自动命名单元测试"""

import random

from bbq.core.worktree_names import CITY_NAMES, DefaultWorktreeNameMode, city_worktree_name
from bbq.core.validation import validate_worktree_name


class TestMode:
    def test_from_config(self):
        assert DefaultWorktreeNameMode.from_config("cities") is DefaultWorktreeNameMode.CITIES
        assert DefaultWorktreeNameMode.from_config(" Cities ") is DefaultWorktreeNameMode.CITIES

    def test_unknown(self):
        assert DefaultWorktreeNameMode.from_config(None) is None
        assert DefaultWorktreeNameMode.from_config("") is None
        assert DefaultWorktreeNameMode.from_config("planets") is None


class TestCityNames:
    """测试城市名表与挑选逻辑"""

    def test_names_are_valid_worktree_names(self):
        assert len(set(CITY_NAMES)) == len(CITY_NAMES)
        for name in CITY_NAMES:
            assert validate_worktree_name(name) is None
            assert name == name.lower()
            assert name.count("-") <= 1

    def test_picks_unused_name(self):
        taken = set(CITY_NAMES[:-1])
        assert city_worktree_name(taken, random.Random(7)) == CITY_NAMES[-1]

    def test_seeded_choice_is_stable(self):
        first = city_worktree_name([], random.Random(42))
        second = city_worktree_name([], random.Random(42))
        assert first == second
        assert first in CITY_NAMES

    def test_all_taken_adds_suffix(self):
        """全部占用时追加数字后缀"""
        name = city_worktree_name(CITY_NAMES, random.Random(3))
        base, suffix = name.rsplit("-", 1)
        assert base in CITY_NAMES
        assert suffix == "2"

    def test_suffix_skips_taken(self):
        rng_seed = 5
        base = random.Random(rng_seed).choice(CITY_NAMES)
        taken = list(CITY_NAMES) + [f"{base}-2", f"{base}-3"]
        assert city_worktree_name(taken, random.Random(rng_seed)) == f"{base}-4"
