from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .chain import is_address


Severity = Literal["high", "medium", "low"]
OverallRisk = Literal["high", "medium", "low", "safe"]

SEVERITY_ORDER = ("high", "medium", "low")


class ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ErrorResponse(ApiModel):
    error: str
    details: Optional[Union[str, List[str]]] = None
    explorer_url: Optional[str] = Field(None, alias="explorerUrl")


class SecurityIssue(ApiModel):
    severity: Severity
    description: str
    recommendation: Optional[str] = None
    impact: Optional[str] = None
    snippet: Optional[str] = None
    line: Optional[int] = None

    @field_validator("severity", mode="before")
    @classmethod
    def _normalize_severity(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            if value == "critical":
                return "high"
        return value

    @field_validator("line", mode="before")
    @classmethod
    def _coerce_line(cls, value: Any) -> Any:
        if isinstance(value, str):
            return int(value) if value.strip().isdigit() else None
        return value


def derive_overall_risk(issues: Iterable[SecurityIssue]) -> OverallRisk:
    """Highest severity present, or ``"safe"`` for no issues."""
    present = {issue.severity for issue in issues}
    for severity in SEVERITY_ORDER:
        if severity in present:
            return severity
    return "safe"


class SecurityReport(ApiModel):
    overall_risk: OverallRisk = Field(..., alias="overallRisk")
    issues: List[SecurityIssue] = Field(default_factory=list)

    @classmethod
    def from_issues(cls, issues: List[SecurityIssue]) -> "SecurityReport":
        return cls(overallRisk=derive_overall_risk(issues), issues=issues)


class CoverageInfo(ApiModel):
    functions: List[str] = Field(default_factory=list)
    lines: Optional[int] = None


class ExpectedOutcome(ApiModel):
    result: str
    gas_estimate: Optional[str] = Field(None, alias="gasEstimate")

    @field_validator("gas_estimate", mode="before")
    @classmethod
    def _stringify_gas(cls, value: Any) -> Any:
        return str(value) if isinstance(value, (int, float)) else value


class GeneratedTest(ApiModel):
    name: str
    description: str
    code: str
    type: Literal["unit", "integration", "security", "gas"]
    coverage: Optional[CoverageInfo] = None
    expected: ExpectedOutcome


class ChatMessage(ApiModel):
    role: Literal["user", "assistant", "system", "contract"]
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    type: str = "text"
    metadata: Optional[Dict[str, Any]] = None


class GenerateContractRequest(ApiModel):
    description: str = Field(..., min_length=1, description="What the contract should do.")
    features: List[str] = Field(..., description="Required contract features.")
    contract_type: str = Field("standard", alias="contractType")


class ContractInfo(ApiModel):
    type: str
    network: str
    features: List[str]
    timestamp: datetime


class GenerateContractResponse(ApiModel):
    code: str
    contract_info: ContractInfo = Field(..., alias="contractInfo")
    message: str
    contract_id: Optional[str] = Field(None, alias="contractId")
    stored: bool
    storage_error: Optional[str] = Field(None, alias="storageError")


class CodeRequest(ApiModel):
    code: str = Field(..., description="Solidity source code.")


class AddressRequest(ApiModel):
    address: str = Field(..., description="Contract address (0x + 40 hex characters).")

    @field_validator("address")
    @classmethod
    def _check_address(cls, value: str) -> str:
        if not is_address(value):
            raise ValueError("Invalid contract address")
        return value


class DecodeResponse(ApiModel):
    contract_code: str = Field(..., alias="contractCode")
    summary: str
    features: List[str]


class ContractChatRequest(ApiModel):
    message: str = Field(..., min_length=1)
    contract_code: str = Field(..., min_length=1, alias="contractCode")
    contract_abi: Optional[Any] = Field(None, alias="contractABI")
    address: Optional[str] = None


class ContractChatResponse(ApiModel):
    response: str
    type: Literal["code", "text"]


class AssistantChatRequest(ApiModel):
    message: str = Field(..., min_length=1)
    history: List[ChatMessage] = Field(default_factory=list)


class AssistantChatResponse(ApiModel):
    message: str


class CompileResponse(ApiModel):
    contract_name: str = Field(..., alias="contractName")
    abi: List[Dict[str, Any]]
    bytecode: str
