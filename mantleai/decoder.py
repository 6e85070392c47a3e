import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence

from .assistant import parse_security_report
from .config import Network
from .errors import ResponseParseError
from .model import LanguageModel
from .parsing import Err, tolerant_parse
from .prompts import Task, compose
from .schemas import SecurityReport
from .source import SourceRecord, SourceResolver
from .truncate import DEFAULT_MAX_LENGTH, truncate_code


logger = logging.getLogger(__name__)

SEVERITY_ICONS = {"high": "🔴", "medium": "🟠", "low": "🟡"}


@dataclass(frozen=True)
class DecodeResult:
    contract_code: str
    summary: str
    features: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"contractCode": self.contract_code, "summary": self.summary, "features": self.features}


def _describe(item: Any) -> str:
    if isinstance(item, dict):
        name = str(item.get("name") or "").strip()
        description = str(item.get("description") or "").strip()
        if name and description:
            return f"{name}: {description}"
        return name or description
    return str(item).strip()


def _strings(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, list):
        return [text for text in (_describe(item) for item in value) if text]
    return []


def build_summary(overview: Mapping[str, Any]) -> str:
    parts = [str(overview.get(key) or "").strip() for key in ("overview", "purpose")]
    return " ".join(part for part in parts if part)


def build_features(
    record: SourceRecord,
    network_label: str,
    overview: Mapping[str, Any],
    report: SecurityReport,
) -> List[str]:
    features = [
        f"🌐 Network: {network_label}",
        f"📄 Contract: {record.contract_name}",
        f"⚙️ Compiler: {record.compiler_version}",
    ]
    features.extend(f"✨ {item}" for item in _strings(overview.get("features")))
    features.extend(f"🔧 {item}" for item in _strings(overview.get("functions")))
    features.extend(f"📝 {item}" for item in _strings(overview.get("specialNotes")))
    for issue in report.issues:
        icon = SEVERITY_ICONS[issue.severity]
        features.append(f"{icon} [{issue.severity.upper()}] {issue.description}")
    features.append(f"🛡️ Overall risk: {report.overall_risk}")
    return features


class ContractDecoder:
    """Resolves verified source for an address and explains it with two model calls."""

    def __init__(
        self,
        resolver: SourceResolver,
        model: LanguageModel,
        networks: Sequence[Network],
        max_code_length: int = DEFAULT_MAX_LENGTH,
    ) -> None:
        self._resolver = resolver
        self._model = model
        self._labels = {network.name: network.label for network in networks}
        self._max_code_length = max_code_length

    async def _summarize(self, code: str, contract_name: str) -> Dict[str, Any]:
        raw = await self._model.complete(compose(Task.SUMMARIZE, code=code, contract_name=contract_name))
        result = tolerant_parse(raw, required=("overview",))
        if isinstance(result, Err):
            raise ResponseParseError(result.reason)
        return result.value

    async def _analyze(self, code: str) -> SecurityReport:
        raw = await self._model.complete(compose(Task.SECURITY_ANALYSIS, code=code))
        return parse_security_report(raw)

    async def decode(self, address: str) -> DecodeResult:
        record = await self._resolver.resolve(address)
        code = truncate_code(record.source_code, self._max_code_length)
        logger.info(
            "Decoding %s (%s, %d of %d chars sent for analysis)",
            address,
            record.contract_name,
            len(code),
            len(record.source_code),
        )

        # Either call failing fails the whole decode.
        overview, report = await asyncio.gather(
            self._summarize(code, record.contract_name),
            self._analyze(code),
        )

        return DecodeResult(
            contract_code=record.source_code,
            summary=build_summary(overview),
            features=build_features(
                record,
                self._labels.get(record.network, record.network),
                overview,
                report,
            ),
        )
