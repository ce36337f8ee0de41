"""
LLM・ツール関連のカスタム例外
"""


class LLMError(Exception):
    """エラーの基底クラス"""
    pass


class LLMConfigError(LLMError):
    """設定エラー（API KEY未設定、未知のバックエンド等）"""
    pass


class LLMAPIError(LLMError):
    """API呼び出しエラー"""
    def __init__(self, message: str, provider: str = None, status_code: int = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class LLMRateLimitError(LLMAPIError):
    """レート制限エラー"""
    pass


class LLMResponseError(LLMError):
    """レスポンス解析エラー（ツール呼び出し回数超過等）"""
    pass


class ToolError(LLMError):
    """ツール関連エラーの基底クラス"""
    pass


class ToolRegistrationError(ToolError):
    """ツール登録エラー（名前の重複等）"""
    pass


class ToolNotFoundError(ToolError):
    """未登録のツール名"""
    def __init__(self, name: str):
        super().__init__(f"Unknown function: {name}")
        self.name = name


class ToolArgumentError(ToolError):
    """ツール引数の解析・検証エラー"""
    pass
