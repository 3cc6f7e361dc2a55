"""
标识符解析器

先精确匹配，未命中时按 key 长度降序扫描，返回第一个满足以下条件的 key：
- 标识符以该 key 开头
- 前缀之后紧跟的字符为空（完全相等）或为边界分隔符（- _ / .）

边界检查保证 "gpt-4" 不会误匹配 "gpt-4o-preview"；长度降序保证最具体的前缀优先，
例如 "gpt-4o-2024-08-06" 匹配 "gpt-4o" 而不是 "gpt-4"。
同一策略用于模型、图片模型与 grounding 前缀三张表。
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Generic, TypeVar

from costbook.config.constants import PricingDefaults

V = TypeVar("V")


def is_valid_prefix_match(identifier: str, prefix: str) -> bool:
    """前缀匹配必须落在边界上"""
    if not identifier.startswith(prefix):
        return False
    if len(identifier) == len(prefix):
        return True
    return identifier[len(prefix)] in PricingDefaults.BOUNDARY_DELIMITERS


def sorted_keys_by_length_desc(keys: Mapping[str, object] | list[str]) -> tuple[str, ...]:
    """按长度降序排列，等长时按字母序，保证顺序确定"""
    return tuple(sorted(keys, key=lambda k: (-len(k), k)))


class PrefixResolver(Generic[V]):
    """基于精确匹配 + 最长边界前缀匹配的查找表（构建后只读）"""

    def __init__(self, table: Mapping[str, V]):
        self._table: dict[str, V] = dict(table)
        self._keys = sorted_keys_by_length_desc(self._table)

    @property
    def keys(self) -> tuple[str, ...]:
        """长度降序的 key 索引"""
        return self._keys

    def __len__(self) -> int:
        return len(self._table)

    def __contains__(self, key: object) -> bool:
        return key in self._table

    def match_key(self, identifier: str) -> str | None:
        """返回命中的 key，未命中返回 None"""
        if identifier in self._table:
            return identifier
        for key in self._keys:
            if is_valid_prefix_match(identifier, key):
                return key
        return None

    def resolve(self, identifier: str) -> tuple[V | None, bool]:
        """
        解析标识符

        Returns:
            (命中的值, 是否找到)
        """
        key = self.match_key(identifier)
        if key is None:
            return None, False
        return self._table[key], True


__all__ = ["PrefixResolver", "is_valid_prefix_match", "sorted_keys_by_length_desc"]
