from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from .chain import is_address
from .schemas import (
    AddressRequest,
    AssistantChatRequest,
    AssistantChatResponse,
    CodeRequest,
    CompileResponse,
    ContractChatRequest,
    ContractChatResponse,
    ContractInfo,
    DecodeResponse,
    ErrorResponse,
    GenerateContractRequest,
    GenerateContractResponse,
    GeneratedTest,
    SecurityReport,
)
from .services import Services


router = APIRouter()


def get_services(request: Request) -> Services:
    return request.app.state.services


@router.post("/api/ai/generate", response_model=GenerateContractResponse)
async def generate_contract(
    request: GenerateContractRequest,
    services: Services = Depends(get_services),
) -> GenerateContractResponse:
    """Generate a Mantle-optimized Solidity contract and record it."""
    if not request.description.strip():
        raise HTTPException(status_code=400, detail="Invalid input: description and features array are required")

    generated = await services.assistant.generate_contract(
        request.description,
        request.features,
        request.contract_type,
    )
    return GenerateContractResponse(
        code=generated.code,
        contractInfo=ContractInfo(
            type=generated.contract_type,
            network="mantle",
            features=generated.features,
            timestamp=generated.timestamp,
        ),
        message="Smart contract generated successfully with Mantle L2 optimizations",
        contractId=generated.contract_id,
        stored=generated.stored,
        storageError=generated.storage_error,
    )


@router.post("/api/ai/analyze", response_model=SecurityReport)
async def analyze_contract(
    request: CodeRequest,
    services: Services = Depends(get_services),
) -> SecurityReport:
    """Security review of Solidity source."""
    if not request.code.strip():
        raise HTTPException(status_code=400, detail="Contract code is required")
    return await services.assistant.analyze_security(request.code)


@router.post("/api/ai/generate-tests", response_model=List[GeneratedTest])
async def generate_tests(
    request: CodeRequest,
    services: Services = Depends(get_services),
) -> List[GeneratedTest]:
    if not request.code.strip():
        raise HTTPException(status_code=400, detail="Contract code is required")
    return await services.assistant.generate_tests(request.code)


@router.post("/api/ai/chat", response_model=AssistantChatResponse)
async def assistant_chat(
    request: AssistantChatRequest,
    services: Services = Depends(get_services),
) -> AssistantChatResponse:
    reply = await services.assistant.assistant_chat(request.message, request.history)
    return AssistantChatResponse(message=reply)


@router.post(
    "/api/decoder/analyze",
    response_model=DecodeResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def decode_contract(
    request: AddressRequest,
    services: Services = Depends(get_services),
) -> DecodeResponse:
    """Explain the verified source deployed at an address."""
    result = await services.decoder.decode(request.address)
    return DecodeResponse(**result.to_dict())


@router.post("/api/chat/analyze", response_model=ContractChatResponse)
async def contract_chat(
    request: ContractChatRequest,
    services: Services = Depends(get_services),
) -> ContractChatResponse:
    response, kind = await services.assistant.contract_chat(
        request.message,
        request.contract_code,
        request.contract_abi,
        request.address,
    )
    return ContractChatResponse(response=response, type=kind)


@router.post("/api/compile", response_model=CompileResponse)
async def compile_contract(
    request: CodeRequest,
    services: Services = Depends(get_services),
) -> CompileResponse:
    if not request.code.strip():
        raise HTTPException(status_code=400, detail="Contract code is required")
    result = await services.compiler.compile(request.code)
    return CompileResponse(**result.to_dict())


@router.get("/api/source/{address}")
async def contract_source(address: str, services: Services = Depends(get_services)) -> dict:
    if not is_address(address):
        raise HTTPException(status_code=400, detail="Invalid contract address")
    record = await services.resolver.resolve(address)
    return record.to_dict()


@router.get("/api/contracts")
async def list_contracts(
    limit: int = Query(20, ge=1, le=100),
    services: Services = Depends(get_services),
) -> list:
    contracts = await services.store.list_contracts(limit)
    return [contract.to_dict() for contract in contracts]


@router.get("/api/contracts/{contract_id}")
async def get_contract(contract_id: str, services: Services = Depends(get_services)) -> dict:
    contract = await services.store.get_contract(contract_id)
    if contract is None:
        raise HTTPException(status_code=404, detail="Contract not found")
    return contract.to_dict()


@router.get("/health")
async def health() -> dict:
    """Simple health check endpoint."""
    return {"status": "ok"}
