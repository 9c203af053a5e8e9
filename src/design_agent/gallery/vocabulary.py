"""Fixed vocabulary used by gallery search and tagging.

Synonym groups are symmetric by construction: a query that contains any
member of a group matches text containing any other member of that group.
"""

import re

SYNONYM_GROUPS: list[frozenset[str]] = [
    frozenset({"login", "signin", "sign in", "log in", "登录", "登陆", "登入"}),
    frozenset({"button", "btn", "按钮", "按键"}),
    frozenset({"card", "卡片", "卡片式", "卡片组件"}),
    frozenset({"nav", "navigation", "menu", "导航", "菜单"}),
    frozenset({"mobile", "phone", "app", "手机", "移动", "移动端"}),
    frozenset({"web", "website", "pc", "网页", "网站"}),
    frozenset({"dashboard", "admin", "仪表盘", "后台"}),
]

# keyword -> tag; any keyword found in an artifact's text adds the tag.
TAG_KEYWORDS: dict[str, str] = {
    "login": "login page",
    "登录": "login page",
    "button": "button component",
    "按钮": "button component",
    "card": "card design",
    "卡片": "card design",
    "nav": "navigation bar",
    "导航": "navigation bar",
    "mobile": "mobile",
    "移动": "mobile",
    "web": "web design",
    "网页": "web design",
    "dashboard": "dashboard",
    "仪表盘": "dashboard",
}


def term_pattern(term: str) -> re.Pattern:
    """ASCII terms match at the start of a word ("app" not in "happy"); CJK anywhere."""
    prefix = r"\b" if term.isascii() else ""
    return re.compile(prefix + re.escape(term))


_GROUP_PATTERNS = [(group, [term_pattern(m) for m in group]) for group in SYNONYM_GROUPS]


def expand_query(query: str) -> set[str]:
    """Return the lowercased query plus every synonym it activates."""
    query = query.strip().lower()
    terms = {query}
    for group, patterns in _GROUP_PATTERNS:
        if any(p.search(query) for p in patterns):
            terms.update(group)
    return terms
