"""
ツール（Function Calling）の登録・変換・実行

Usage:
    from fncall_portability.tools import default_registry

    registry = default_registry()
    registry.names()                                  # ["paymentStatus"]
    registry.invoke("paymentStatus", '{"id": "003"}')  # {"name": "rejected"}

    # プロバイダー別のツール定義
    registry.openai_tools()        # OpenAI / Azure OpenAI / Mistral
    registry.anthropic_tools()     # Anthropic
    registry.vertex_declarations() # Vertex AI (Gemini)
"""

import json
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Mapping, Optional, Union

from .dataset import lookup_status
from .exceptions import ToolArgumentError, ToolError, ToolNotFoundError, ToolRegistrationError
from .types import Transaction, TransactionNotFound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FunctionTool:
    """モデルに公開する関数の定義"""
    name: str
    description: str  # モデルが呼び出し要否を判断するための説明
    input_schema: dict
    output_schema: dict
    handler: Callable[[dict], dict]

    def to_openai(self) -> dict:
        """OpenAI形式（Azure OpenAI・Mistralも同形式）"""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }

    def to_anthropic(self) -> dict:
        """Anthropic形式"""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }

    def to_vertex(self) -> dict:
        """Vertex AI (Gemini) のFunctionDeclaration形式"""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": _gemini_schema(self.input_schema),
        }


def _gemini_schema(schema: Mapping) -> dict:
    """JSON Schemaをgemini用に変換（typeは大文字、additionalPropertiesは非対応）"""
    converted = {}
    for key, value in schema.items():
        if key == "additionalProperties":
            continue
        if key == "type" and isinstance(value, str):
            converted[key] = value.upper()
        elif key == "properties":
            converted[key] = {name: _gemini_schema(prop) for name, prop in value.items()}
        elif key == "items":
            converted[key] = _gemini_schema(value)
        else:
            converted[key] = value
    return converted


class ToolRegistry:
    """名前付きツールのレジストリ"""

    def __init__(self, tools: Iterable[FunctionTool] = ()):
        self._tools: dict[str, FunctionTool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: FunctionTool) -> FunctionTool:
        """ツールを登録（名前はレジストリ内で一意）"""
        if tool.name in self._tools:
            raise ToolRegistrationError(f"Function already registered: {tool.name}")
        self._tools[tool.name] = tool
        return tool

    def get(self, name: str) -> FunctionTool:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def names(self) -> list[str]:
        return list(self._tools)

    def select(self, names: Iterable[str]) -> "ToolRegistry":
        """指定した名前のツールだけを持つレジストリを作成"""
        return ToolRegistry(self.get(name) for name in names)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[FunctionTool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    # -------------------------------------------------------------------------
    # 実行
    # -------------------------------------------------------------------------
    def invoke(self, name: str, arguments: Union[str, Mapping, None]) -> dict:
        """
        ツールを実行

        Args:
            name: ツール名
            arguments: JSON文字列（OpenAI/Mistral）またはdict（Anthropic/Vertex）

        Raises:
            ToolNotFoundError: 未登録のツール
            ToolArgumentError: 引数が不正
        """
        tool = self.get(name)
        args = _parse_arguments(arguments)
        logger.info("Invoking function %s(%s)", name, args)
        return tool.handler(args)

    def dispatch(self, name: str, arguments: Union[str, Mapping, None]) -> dict:
        """
        モデルからのツール呼び出しを実行

        ツールエラーは会話を中断せず {"error": ...} としてモデルに返す
        """
        try:
            return self.invoke(name, arguments)
        except ToolError as e:
            logger.warning("Function call %s failed: %s", name, e)
            return {"error": str(e)}

    # -------------------------------------------------------------------------
    # プロバイダー別定義
    # -------------------------------------------------------------------------
    def openai_tools(self) -> list[dict]:
        return [tool.to_openai() for tool in self]

    def anthropic_tools(self) -> list[dict]:
        return [tool.to_anthropic() for tool in self]

    def vertex_declarations(self) -> list[dict]:
        return [tool.to_vertex() for tool in self]


def _parse_arguments(arguments: Union[str, Mapping, None]) -> dict:
    if arguments is None:
        return {}
    if isinstance(arguments, str):
        if not arguments.strip():
            return {}
        try:
            arguments = json.loads(arguments)
        except json.JSONDecodeError as e:
            raise ToolArgumentError(f"Invalid JSON arguments: {e}")
    if not isinstance(arguments, Mapping):
        raise ToolArgumentError(f"Arguments must be an object, got {type(arguments).__name__}")
    return dict(arguments)


# =============================================================================
# paymentStatus
# =============================================================================
def payment_status(arguments: dict) -> dict:
    """決済トランザクションのステータスを返す"""
    transaction_id = arguments.get("id")
    if not isinstance(transaction_id, str) or not transaction_id:
        raise ToolArgumentError("paymentStatus requires a string 'id'")

    result = lookup_status(Transaction(transaction_id))
    if isinstance(result, TransactionNotFound):
        return {"id": transaction_id, "error": "not_found"}
    return {"name": result.name}


PAYMENT_STATUS_TOOL = FunctionTool(
    name="paymentStatus",
    description="Get the status of a payment transaction",
    input_schema={
        "type": "object",
        "properties": {
            "id": {"type": "string", "description": "The payment transaction id, e.g. 001"},
        },
        "required": ["id"],
        "additionalProperties": False,
    },
    output_schema={
        "type": "object",
        "properties": {
            "name": {"type": "string", "description": "The payment status"},
        },
    },
    handler=payment_status,
)


def default_registry(names: Optional[Iterable[str]] = None) -> ToolRegistry:
    """paymentStatusを登録したレジストリを作成（namesで絞り込み）"""
    registry = ToolRegistry([PAYMENT_STATUS_TOOL])
    if names is not None:
        return registry.select(names)
    return registry
