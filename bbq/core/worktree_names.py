"""Worktree 自动命名

default_worktree_name = "cities" 时，用城市名作为新 worktree 的名称。
"""

import random
from enum import Enum
from typing import Iterable, Optional


class DefaultWorktreeNameMode(Enum):
    """自动命名模式"""
    CITIES = "cities"

    @classmethod
    def from_config(cls, value: Optional[str]) -> Optional["DefaultWorktreeNameMode"]:
        """从配置值解析，无法识别时返回 None"""
        if not value:
            return None
        normalized = value.strip().lower()
        for mode in cls:
            if mode.value == normalized:
                return mode
        return None


# 人口超过 120 万的城市（Natural Earth 公共领域数据），统一为小写短横线格式，
# 每个名字最多一个 '-'
CITY_NAMES = (
    "tokyo", "mexico-city", "mumbai", "sao-paulo", "delhi", "shanghai", "kolkata", "dhaka",
    "buenos-aires", "los-angeles", "karachi", "cairo", "osaka", "beijing", "manila", "moscow",
    "istanbul", "paris", "seoul", "lagos", "jakarta", "chicago", "guangzhou", "london",
    "lima", "tehran", "kinshasa", "bogota", "shenzhen", "wuhan", "hong-kong", "tianjin",
    "chennai", "taipei", "bengaluru", "bangkok", "lahore", "chongqing", "hyderabad", "santiago",
    "miami", "belo-horizonte", "madrid", "philadelphia", "ahmedabad", "toronto", "singapore", "luanda",
    "baghdad", "barcelona", "dallas", "shenyang", "khartoum", "pune", "sydney", "saint-petersburg",
    "atlanta", "boston", "riyadh", "houston", "hanoi", "washington", "guadalajara", "melbourne",
    "alexandria", "chengdu", "detroit", "yangon", "xi-an", "porto-alegre", "surat", "abidjan",
    "brasilia", "ankara", "monterrey", "nanjing", "montreal", "recife", "harbin", "fortaleza",
    "phoenix", "salvador", "busan", "san-francisco", "johannesburg", "berlin", "algiers", "rome",
    "medellin", "kabul", "athens", "nagoya", "cape-town", "casablanca", "dalian", "tel-aviv",
    "addis-ababa", "curitiba", "seattle", "jeddah", "nairobi", "hangzhou", "caracas", "milan",
    "kunming", "jaipur", "san-diego", "frankfurt", "qingdao", "surabaya", "lisbon", "fukuoka",
    "campinas", "kaohsiung", "durban", "kyiv", "lucknow", "minneapolis", "dakar", "izmir",
    "incheon", "sapporo", "xiamen", "guayaquil", "san-juan", "damascus", "tunis", "vienna",
    "bandung", "tampa", "vancouver", "denver", "birmingham", "baltimore", "cali", "sendai",
    "naples", "manchester", "st-louis", "tripoli", "tashkent", "havana", "belem", "santo-domingo",
    "baku", "accra", "medan", "maracaibo", "kuwait-city", "hiroshima", "hefei", "indore",
    "haiphong", "suzhou", "bucharest", "ningbo", "cleveland", "portland", "asuncion", "brisbane",
    "beirut", "pittsburgh", "las-vegas", "minsk", "kyoto", "barranquilla", "valencia", "hamburg",
    "manaus", "wuxi", "brussels", "warsaw", "rabat", "quito", "budapest", "san-jose",
    "cincinnati", "isfahan", "sacramento", "la-paz", "abuja", "harare", "tijuana", "perth",
    "kochi", "montevideo", "florence", "bamako",
)


def city_worktree_name(existing_names: Iterable[str], rng: Optional[random.Random] = None) -> str:
    """挑选一个未被占用的城市名

    所有城市名都被占用时，在随机城市名后追加 -2、-3 ... 直到不冲突。

    Args:
        existing_names: 仓库中已有的 worktree 名称
        rng: 随机数生成器，测试时可注入固定种子

    Returns:
        城市名
    """
    rng = rng or random.Random()
    taken = set(existing_names)

    available = [name for name in CITY_NAMES if name not in taken]
    if available:
        return rng.choice(available)

    base = rng.choice(CITY_NAMES)
    suffix = 2
    while f"{base}-{suffix}" in taken:
        suffix += 1
    return f"{base}-{suffix}"
