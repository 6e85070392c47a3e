from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence


VULNERABILITIES_DIR = Path(__file__).parent / "vulnerabilities"


def _extract_vulnerability_title(content: str, fallback: Path) -> str:
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith("#"):
            stripped = stripped.lstrip("#").strip()
        return stripped
    return fallback.stem.replace("-", " ").title()


def _extract_vulnerability_description(content: str) -> str:
    description_lines = []
    in_code_block = False
    for line in content.splitlines():
        stripped = line.strip()
        if stripped.startswith("```"):
            in_code_block = not in_code_block
            continue
        if in_code_block or not stripped:
            continue
        if stripped.startswith("#"):
            continue
        stripped = stripped.lstrip("-*").strip()
        if stripped:
            description_lines.append(stripped)
    return " ".join(description_lines)


def load_vulnerability_descriptions(directory: Path = VULNERABILITIES_DIR) -> str:
    entries = []
    for path in sorted(directory.glob("*.md")):
        content = path.read_text(encoding="utf-8")
        if not content.strip():
            continue
        title = _extract_vulnerability_title(content, path)
        description = _extract_vulnerability_description(content)
        if description:
            entries.append(f"- {title}: {description}")
        else:
            entries.append(f"- {title}")
    return "\n".join(entries)


VULNERABILITY_DESCRIPTIONS = load_vulnerability_descriptions()


class Task(str, enum.Enum):
    GENERATE_CONTRACT = "generate_contract"
    SECURITY_ANALYSIS = "security_analysis"
    GENERATE_TESTS = "generate_tests"
    SUMMARIZE = "summarize"
    CONTRACT_CHAT = "contract_chat"
    ASSISTANT_CHAT = "assistant_chat"


@dataclass(frozen=True)
class PromptMessages:
    """A fully composed chat request for the language model."""

    task: Task
    system: str
    user: str
    temperature: float
    max_tokens: int
    json_mode: bool = False
    presence_penalty: float = 0.0
    frequency_penalty: float = 0.0
    history: Sequence[Dict[str, str]] = ()

    def to_messages(self) -> List[Dict[str, str]]:
        messages = [{"role": "system", "content": self.system}]
        messages.extend(self.history)
        messages.append({"role": "user", "content": self.user})
        return messages


GENERATE_CONTRACT_SYSTEM = """You are a Solidity developer specializing in Mantle Network smart contracts. Generate clean, efficient smart contracts without comments or documentation. Focus on:
1. Gas efficiency for Mantle L2
2. Custom errors instead of requires
3. Proper event emission
4. Access control
5. Security best practices
6. Clean, minimal code structure

Return ONLY the Solidity contract code without any comments or documentation."""

GENERATE_CONTRACT_USER = """Create a {contract_type} smart contract for Mantle Network with these requirements:

Description: {description}

Features:
{features}

Follow this exact format:

// SPDX-License-Identifier: MIT
pragma solidity ^0.8.19;

contract [ContractName] {{
    address public owner;
    [state variables]

    event [EventName]([parameters]);

    error Unauthorized();
    error InvalidInput();

    modifier onlyOwner() {{
        if (msg.sender != owner) revert Unauthorized();
        _;
    }}

    constructor() {{
        owner = msg.sender;
    }}

    [functions]
}}

Generate the contract with:
1. No comments or documentation
2. Custom errors instead of requires
3. Events for state changes
4. Proper access control
5. Input validation with custom errors
6. Gas optimization for Mantle L2

Return ONLY the complete Solidity contract code."""

SECURITY_ANALYSIS_SYSTEM = """You are an expert Mantle L2 smart contract auditor. Analyze the given contract code for security vulnerabilities.

Respond with a single JSON object of this shape:
{
  "overallRisk": "high" | "medium" | "low" | "safe",
  "issues": [{
    "severity": "high" | "medium" | "low",
    "description": string,
    "recommendation": string,
    "impact": string,
    "snippet": string,
    "line": number
  }]
}

Report every distinct issue once. Return an empty "issues" array when the contract has no findings."""

SECURITY_ANALYSIS_TAXONOMY = """

Vulnerability Type Descriptions:
{descriptions}"""

GENERATE_TESTS_SYSTEM = """You are an expert smart contract test writer specializing in comprehensive test coverage. Generate a variety of tests including:

1. Unit Tests:
   - Function-level testing
   - Input validation
   - State changes
   - Event emissions

2. Integration Tests:
   - Contract interactions
   - Complex scenarios
   - Edge cases

3. Security Tests:
   - Access control
   - Input validation
   - Reentrancy protection
   - Integer overflow/underflow

4. Gas Optimization Tests:
   - Gas usage tracking
   - Optimization verification
   - Mantle L2-specific optimizations

Format the response as a JSON object:
{
  "tests": [{
    "name": string,
    "description": string,
    "code": string,
    "type": "unit" | "integration" | "security" | "gas",
    "coverage": {
      "functions": string[],
      "lines": number
    },
    "expected": {
      "result": string,
      "gasEstimate": string
    }
  }]
}

Use Hardhat/Chai syntax for tests. Include comments explaining test logic."""

SUMMARIZE_SYSTEM = """You are an expert smart contract analyzer. Explain the given verified Solidity source to a non-specialist.

Respond with a single JSON object of this shape:
{
  "overview": string,
  "purpose": string,
  "features": string[],
  "functions": string[],
  "specialNotes": string[]
}

"overview" is a one or two sentence description of what the contract is. "purpose" explains what it is used for. "functions" lists the important external functions with a short note each."""

CONTRACT_CHAT_SYSTEM = """You are an expert Mantle blockchain developer assistant specializing in L2 optimization and security analysis. Your role is to:

1. FUNCTIONALITY ANALYSIS:
   - Explain contract functionality in clear, non-technical terms
   - Identify key features and their business impact
   - Highlight unique aspects of the implementation

2. MANTLE L2 OPTIMIZATION:
   - Suggest Mantle-specific optimizations for gas efficiency
   - Recommend rollup-aware design patterns

3. INTERACTION GUIDANCE:
   - Provide step-by-step function interaction examples
   - Explain parameter requirements with validation rules

4. SECURITY INSIGHTS:
   - Identify potential vulnerabilities and risks
   - Suggest security improvements

Format responses with clear sections and code examples when relevant."""

ASSISTANT_CHAT_SYSTEM = """You are MNT AI, an AI assistant specialized in the Mantle Network ecosystem. You help users understand:

1. Mantle Network's Layer 2 scaling solution
2. Smart contract development on Mantle
3. Network features and capabilities
4. Performance metrics and statistics
5. Best practices for building on Mantle

Keep responses concise, technical but approachable, and always accurate. If uncertain, admit limitations."""


def _generate_contract(description: str, features: Sequence[str], contract_type: str = "standard") -> PromptMessages:
    user = GENERATE_CONTRACT_USER.format(
        contract_type=contract_type,
        description=description,
        features="\n".join(f"- {feature}" for feature in features),
    )
    return PromptMessages(
        task=Task.GENERATE_CONTRACT,
        system=GENERATE_CONTRACT_SYSTEM,
        user=user,
        temperature=0.2,
        max_tokens=3000,
        presence_penalty=0.1,
        frequency_penalty=0.1,
    )


def _security_analysis(code: str) -> PromptMessages:
    system = SECURITY_ANALYSIS_SYSTEM
    descriptions = VULNERABILITY_DESCRIPTIONS.strip()
    if descriptions:
        system += SECURITY_ANALYSIS_TAXONOMY.format(descriptions=descriptions)
    return PromptMessages(
        task=Task.SECURITY_ANALYSIS,
        system=system,
        user=f"Analyze this smart contract:\n\n{code}",
        temperature=0.3,
        max_tokens=4096,
        json_mode=True,
    )


def _generate_tests(code: str) -> PromptMessages:
    return PromptMessages(
        task=Task.GENERATE_TESTS,
        system=GENERATE_TESTS_SYSTEM,
        user=f"Generate comprehensive tests for this smart contract:\n\n{code}",
        temperature=0.3,
        max_tokens=4096,
        json_mode=True,
    )


def _summarize(code: str, contract_name: str = "Unknown") -> PromptMessages:
    return PromptMessages(
        task=Task.SUMMARIZE,
        system=SUMMARIZE_SYSTEM,
        user=f"Contract name: {contract_name}\n\nSource code:\n\n{code}",
        temperature=0.3,
        max_tokens=2000,
        json_mode=True,
    )


def _contract_chat(
    message: str,
    contract_code: str,
    contract_abi: Optional[Any] = None,
    address: Optional[str] = None,
) -> PromptMessages:
    user = (
        f"Contract Address: {address or 'not deployed'}\n"
        f"Contract Code:\n{contract_code}\n"
        f"ABI:\n{json.dumps(contract_abi)}\n\n"
        f"User Question: {message}"
    )
    return PromptMessages(
        task=Task.CONTRACT_CHAT,
        system=CONTRACT_CHAT_SYSTEM,
        user=user,
        temperature=0.3,
        max_tokens=2000,
    )


def _assistant_chat(message: str, history: Sequence[Dict[str, str]] = ()) -> PromptMessages:
    return PromptMessages(
        task=Task.ASSISTANT_CHAT,
        system=ASSISTANT_CHAT_SYSTEM,
        user=message,
        temperature=0.7,
        max_tokens=2000,
        presence_penalty=0.1,
        frequency_penalty=0.1,
        history=tuple(history),
    )


_COMPOSERS = {
    Task.GENERATE_CONTRACT: _generate_contract,
    Task.SECURITY_ANALYSIS: _security_analysis,
    Task.GENERATE_TESTS: _generate_tests,
    Task.SUMMARIZE: _summarize,
    Task.CONTRACT_CHAT: _contract_chat,
    Task.ASSISTANT_CHAT: _assistant_chat,
}


def compose(task: Task, **payload: Any) -> PromptMessages:
    """Build the fixed instructions plus templated user message for ``task``."""
    return _COMPOSERS[Task(task)](**payload)
