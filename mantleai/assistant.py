"""Single-prompt contract operations: generate, analyze, test and chat."""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from .errors import InvalidRequest, LanguageModelError, ResponseParseError, StorageError
from .model import LanguageModel
from .parsing import Err, strip_code_fences, tolerant_parse
from .prompts import Task, compose
from .schemas import ChatMessage, GeneratedTest, SecurityIssue, SecurityReport
from .store import ContractStore


logger = logging.getLogger(__name__)

NETWORK = "mantle"
SOLIDITY_VERSION = "^0.8.19"

_INLINE_FENCE_RE = re.compile(r"```[a-z]*\n?")
_TRAILING_FENCE_RE = re.compile(r"```[ \t]*$", re.MULTILINE)


@dataclass(frozen=True)
class GeneratedContract:
    code: str
    contract_type: str
    features: List[str]
    timestamp: datetime
    contract_id: Optional[str] = None
    storage_error: Optional[str] = None

    @property
    def stored(self) -> bool:
        return self.contract_id is not None


def parse_security_report(raw: str) -> SecurityReport:
    """Turn model output into a report whose overall risk is derived from its issues."""
    result = tolerant_parse(raw, required=("issues",), array_keys=("issues",))
    if isinstance(result, Err):
        raise ResponseParseError(result.reason)

    issues: List[SecurityIssue] = []
    for entry in result.value["issues"]:
        try:
            issues.append(SecurityIssue.model_validate(entry))
        except ValidationError as exc:
            logger.warning("Dropping malformed security issue %r: %s", entry, exc.errors()[:1])
    return SecurityReport.from_issues(issues)


def parse_generated_tests(raw: str) -> List[GeneratedTest]:
    result = tolerant_parse(raw)
    if isinstance(result, Err):
        raise ResponseParseError(result.reason)

    value = result.value
    if isinstance(value, dict):
        value = value.get("tests")
    if not isinstance(value, list):
        raise ResponseParseError("'tests' must be an array")

    tests: List[GeneratedTest] = []
    for entry in value:
        try:
            tests.append(GeneratedTest.model_validate(entry))
        except ValidationError as exc:
            logger.warning("Dropping malformed generated test: %s", exc.errors()[:1])
    return tests


def _clean_contract_code(text: str) -> str:
    code = _TRAILING_FENCE_RE.sub("", strip_code_fences(text)).strip()
    if "pragma solidity" not in code or "contract " not in code:
        raise LanguageModelError("Generated code does not match required format")
    return code


def _chat_history(history: Sequence[ChatMessage]) -> Tuple[Dict[str, str], ...]:
    return tuple(
        {"role": message.role, "content": message.content}
        for message in history
        if message.role in ("user", "assistant")
    )


class ContractAssistant:
    def __init__(self, model: LanguageModel, store: ContractStore) -> None:
        self._model = model
        self._store = store

    async def generate_contract(
        self,
        description: str,
        features: Sequence[str],
        contract_type: str = "standard",
    ) -> GeneratedContract:
        if not description.strip():
            raise InvalidRequest("Invalid input: description and features array are required")

        logger.info("Generating Mantle-optimized %s contract", contract_type)
        prompt = compose(
            Task.GENERATE_CONTRACT,
            description=description,
            features=features,
            contract_type=contract_type,
        )
        code = _clean_contract_code(await self._model.complete(prompt))
        timestamp = datetime.now(timezone.utc)

        metadata: Dict[str, Any] = {
            "network": NETWORK,
            "solidityVersion": SOLIDITY_VERSION,
            "features": list(features),
            "contractType": contract_type,
            "timestamp": timestamp.isoformat(),
        }
        try:
            stored = await self._store.save_contract(code, description, metadata)
        except StorageError as exc:
            logger.error("Generated contract was not stored: %s", exc.details or exc.message)
            return GeneratedContract(
                code=code,
                contract_type=contract_type,
                features=list(features),
                timestamp=timestamp,
                storage_error=exc.message,
            )

        return GeneratedContract(
            code=code,
            contract_type=contract_type,
            features=list(features),
            timestamp=timestamp,
            contract_id=stored.id,
        )

    async def analyze_security(self, code: str) -> SecurityReport:
        if not code.strip():
            raise InvalidRequest("Contract code is required")
        raw = await self._model.complete(compose(Task.SECURITY_ANALYSIS, code=code))
        report = parse_security_report(raw)
        logger.info("Security analysis found %d issues, overall risk %s", len(report.issues), report.overall_risk)
        return report

    async def generate_tests(self, code: str) -> List[GeneratedTest]:
        if not code.strip():
            raise InvalidRequest("Contract code is required")
        raw = await self._model.complete(compose(Task.GENERATE_TESTS, code=code))
        return parse_generated_tests(raw)

    async def contract_chat(
        self,
        message: str,
        contract_code: str,
        contract_abi: Optional[Any] = None,
        address: Optional[str] = None,
    ) -> Tuple[str, str]:
        """Answer a question about a contract; returns ``(response, "code" | "text")``."""
        prompt = compose(
            Task.CONTRACT_CHAT,
            message=message,
            contract_code=contract_code,
            contract_abi=contract_abi,
            address=address,
        )
        raw = await self._model.complete(prompt)
        kind = "code" if "```" in raw else "text"
        response = _INLINE_FENCE_RE.sub("", raw).replace("```", "").strip()
        return response, kind

    async def assistant_chat(self, message: str, history: Sequence[ChatMessage] = ()) -> str:
        prompt = compose(Task.ASSISTANT_CHAT, message=message, history=_chat_history(history))
        return (await self._model.complete(prompt)).strip()
