"""
バックエンドごとのトークン使用量を記録・集計するモジュール
"""

import json
from dataclasses import dataclass, field, asdict
from datetime import datetime
from pathlib import Path


@dataclass
class UsageRecord:
    """1回のAPI呼び出し記録（ツール呼び出しの往復分を含む）"""
    provider: str
    model: str
    input_tokens: int
    output_tokens: int
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())


class UsageTracker:
    """トークン使用量を記録"""

    def __init__(self):
        self._records: list[UsageRecord] = []

    def add(self, provider: str, model: str, input_tokens: int, output_tokens: int):
        """使用量を追加"""
        self._records.append(UsageRecord(
            provider=provider,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        ))

    @property
    def call_count(self) -> int:
        return len(self._records)

    @property
    def total_input_tokens(self) -> int:
        return sum(r.input_tokens for r in self._records)

    @property
    def total_output_tokens(self) -> int:
        return sum(r.output_tokens for r in self._records)

    @property
    def total_tokens(self) -> int:
        return self.total_input_tokens + self.total_output_tokens

    def by_provider(self) -> dict[str, dict]:
        """プロバイダー別の集計"""
        totals: dict[str, dict] = {}
        for r in self._records:
            entry = totals.setdefault(r.provider, {"calls": 0, "input_tokens": 0, "output_tokens": 0})
            entry["calls"] += 1
            entry["input_tokens"] += r.input_tokens
            entry["output_tokens"] += r.output_tokens
        return totals

    def summary(self) -> dict:
        """サマリーを返す"""
        return {
            "call_count": self.call_count,
            "total_input_tokens": self.total_input_tokens,
            "total_output_tokens": self.total_output_tokens,
            "total_tokens": self.total_tokens,
            "by_provider": self.by_provider(),
        }

    def details(self) -> list[dict]:
        """詳細な使用量履歴を取得"""
        return [asdict(r) for r in self._records]

    def reset(self):
        """統計をリセット"""
        self._records = []

    def print_summary(self):
        """使用量サマリーを出力"""
        print(f"\n{'='*40}")
        print("LLM Usage Summary")
        print('='*40)
        print(f"API calls:       {self.call_count}")
        print(f"Input tokens:    {self.total_input_tokens:,}")
        print(f"Output tokens:   {self.total_output_tokens:,}")
        print(f"Total tokens:    {self.total_tokens:,}")
        for provider, entry in self.by_provider().items():
            print(f"  {provider:<14} {entry['calls']} calls, "
                  f"{entry['input_tokens'] + entry['output_tokens']:,} tokens")
        print('='*40 + "\n")

    def save_to_file(self, filepath: str):
        """使用量をJSONファイルに保存"""
        data = {
            "summary": self.summary(),
            "details": self.details(),
        }
        Path(filepath).write_text(json.dumps(data, ensure_ascii=False, indent=2))


# =============================================================================
# グローバルインスタンス
# =============================================================================
_default_tracker = UsageTracker()


def get_default_tracker() -> UsageTracker:
    """デフォルトトラッカーを取得"""
    return _default_tracker


def add_usage(provider: str, model: str, input_tokens: int, output_tokens: int):
    """使用量を追加（デフォルトトラッカー）"""
    _default_tracker.add(provider, model, input_tokens, output_tokens)


def get_usage_stats() -> dict:
    """現在の使用量統計を取得"""
    return _default_tracker.summary()


def reset_usage_stats():
    """使用量統計をリセット"""
    _default_tracker.reset()


def print_usage_summary():
    """使用量サマリーを出力"""
    _default_tracker.print_summary()


def save_usage(filepath: str):
    """使用量をファイルに保存"""
    _default_tracker.save_to_file(filepath)
