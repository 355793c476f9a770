"""
Typed views over the debug_traceTransaction wire format.

Struct log entries keep the node's original dict so that fields this package
never reads (memory, storage, refund, error, ...) come back out unchanged.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..bytecode.opcodes import is_call
from ..exceptions import MalformedTrace

ADDRESS_MASK = (1 << 160) - 1


@dataclass(frozen=True)
class StructLog:
    """One step of the node's struct logger."""

    raw: Mapping[str, Any]

    @property
    def op(self) -> str:
        return self.raw.get("op", "")

    @property
    def pc(self) -> Optional[int]:
        return self.raw.get("pc")

    @property
    def depth(self) -> int:
        return self.raw["depth"]

    @property
    def stack(self) -> List[str]:
        """Stack words as hex strings, top of stack last."""
        return self.raw.get("stack") or []

    @property
    def is_call(self) -> bool:
        return is_call(self.op)

    def callee_address(self) -> Optional[str]:
        """
        Address read from the second stack item from the top.

        The same slot is used for every call-family opcode; for CALL and
        CALLCODE it is the target, while DELEGATECALL and STATICCALL share the
        layout up to that slot. Returns None when the stack is too short.
        """
        stack = self.stack
        if len(stack) < 2:
            return None
        try:
            word = int(stack[-2], 16)
        except (TypeError, ValueError) as e:
            raise MalformedTrace(f"Stack word {stack[-2]!r} at pc {self.pc} is not hex") from e
        return "0x{:040x}".format(word & ADDRESS_MASK)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.raw)


@dataclass(frozen=True)
class DebugTrace:
    """A debug_traceTransaction response: envelope plus struct logs."""

    id: Any
    jsonrpc: Optional[str]
    gas: Any
    return_value: Any
    struct_logs: Tuple[StructLog, ...]
    extra: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_response(cls, response: Mapping[str, Any]) -> "DebugTrace":
        """
        Build a DebugTrace from a JSON-RPC response dict.

        Raises:
            MalformedTrace: result or result.structLogs is missing, or the
                depth sequence is inconsistent
        """
        result = response.get("result")
        if not isinstance(result, Mapping):
            raise MalformedTrace("Trace response has no 'result' object")
        logs = result.get("structLogs")
        if not isinstance(logs, list):
            raise MalformedTrace("Trace result has no 'structLogs' list")

        struct_logs = tuple(StructLog(entry) for entry in logs)
        validate_depths(struct_logs)
        extra = {
            key: value
            for key, value in result.items()
            if key not in ("gas", "returnValue", "structLogs")
        }
        return cls(
            id=response.get("id"),
            jsonrpc=response.get("jsonrpc"),
            gas=result.get("gas"),
            return_value=result.get("returnValue"),
            struct_logs=struct_logs,
            extra=extra,
        )

    @property
    def root_depth(self) -> int:
        """Depth of the outermost frame: 0 on ganache-style nodes, 1 on geth."""
        if not self.struct_logs:
            return 0
        return self.struct_logs[0].depth

    def logs_at_depth(self, depth: int) -> List[StructLog]:
        return [log for log in self.struct_logs if log.depth == depth]

    def calls(self) -> Iterable[StructLog]:
        """Call-family entries in execution order."""
        return (log for log in self.struct_logs if log.is_call)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"gas": self.gas, "returnValue": self.return_value}
        result.update(self.extra)
        result["structLogs"] = [log.to_dict() for log in self.struct_logs]
        return {"id": self.id, "jsonrpc": self.jsonrpc, "result": result}


def validate_depths(struct_logs: Tuple[StructLog, ...]) -> None:
    """
    Check the depth column of a struct log sequence.

    Depths must be non-negative integers, may rise by at most one per step
    (entering a call) and never drop below the first entry's depth.
    """
    previous = None
    root = None
    for index, log in enumerate(struct_logs):
        depth = log.raw.get("depth")
        if not isinstance(depth, int) or isinstance(depth, bool) or depth < 0:
            raise MalformedTrace(f"structLogs[{index}] has invalid depth {depth!r}")
        if previous is None:
            root = depth
        elif depth > previous + 1:
            raise MalformedTrace(
                f"structLogs[{index}] jumps from depth {previous} to {depth}"
            )
        elif depth < root:
            raise MalformedTrace(
                f"structLogs[{index}] returns to depth {depth} above the root depth {root}"
            )
        previous = depth
