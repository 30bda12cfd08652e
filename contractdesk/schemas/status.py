"""Pydantic schemas for the public status snapshot."""

from typing import Literal

from pydantic import BaseModel, Field


class ServerStatus(BaseModel):
    status: Literal["ONLINE"] = "ONLINE"
    uptime: str = Field(description="Human readable uptime, e.g. 1h 2m 3s")
    uptime_ms: int
    python_version: str
    platform: str
    environment: str


class DatabaseStatus(BaseModel):
    status: Literal["ONLINE", "OFFLINE"]
    latency: str = Field(description="Probe latency, e.g. 3ms")


class CpuStatus(BaseModel):
    cores: int
    load: str | None = Field(default=None, description="1-minute load average where available")


class MemoryStatus(BaseModel):
    """Process resident memory against total system memory; None where the platform cannot report it."""

    used: str | None = Field(default=None, description="Process RSS, e.g. 84MB")
    total: str | None = Field(default=None, description="System memory, e.g. 16008MB")
    percentage: str | None = Field(default=None, description="used / total, e.g. 1%")


class ContractCounts(BaseModel):
    """Aggregate contract counts grouped into dashboard buckets."""

    total: int = 0
    pending: int = 0
    active: int = 0
    completed: int = 0


class StatusResponse(BaseModel):
    """Response body for GET /status."""

    server: ServerStatus
    database: DatabaseStatus
    memory: MemoryStatus
    cpu: CpuStatus
    contracts: ContractCounts
    timestamp: str
