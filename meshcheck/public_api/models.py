"""Pydantic models for the control plane public API."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class CheckStatus(str, Enum):
    OK = "OK"
    FAIL = "FAIL"
    ERROR = "ERROR"


# ── Responses ────────────────────────────────────────────────────────────────


class SelfCheckResult(BaseModel):
    subsystemName: str
    checkDescription: str
    status: CheckStatus = CheckStatus.OK
    friendlyMessageToUser: str = ""


class SelfCheckResponse(BaseModel):
    results: list[SelfCheckResult] = []


class Pod(BaseModel):
    name: str
    namespace: str = ""
    status: str = ""
    podIP: str = ""
    deployment: str = ""
    # set when the pod's proxy metrics were found in Prometheus
    added: bool = False


class ListPodsResponse(BaseModel):
    pods: list[Pod] = []


class VersionInfo(BaseModel):
    goVersion: str = ""
    buildDate: str = ""
    releaseVersion: str = ""


# ── Requests ─────────────────────────────────────────────────────────────────


class ListPodsRequest(BaseModel):
    namespace: str = ""
