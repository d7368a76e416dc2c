"""
Source adapters - the one contract every council data source satisfies:
take a DispatchPlan, return CollectionEntry items or raise a BinLookupError.

GenericAdapter     runs the council script in a separate, time-limited process
StandardizedApiAdapter  talks to the cross-council waste services API over HTTP
"""

import json
import logging
import os
import re
import subprocess
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError

import config
from services.binfinder.errors import AdapterExecutionError, ParseError
from services.binfinder.models import CollectionEntry, DispatchPlan, Strategy
from services.binfinder.normalizer import (
    classify_adapter_failure,
    normalise_payload,
    parse_collection_date,
)
from services.common.logging_utils import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parent.parent.parent

_BINS_OBJECT_RE = re.compile(r'\{\s*"bins"\s*:')


class SourceAdapter(ABC):
    @abstractmethod
    def fetch(self, plan: DispatchPlan) -> Any:
        """Raw payload from the source."""

    def execute(self, plan: DispatchPlan) -> list[CollectionEntry]:
        return normalise_payload(self.fetch(plan), plan)


# ---------------------------------------------------------------------------
# Generic council script
# ---------------------------------------------------------------------------


def extract_json_document(output: str) -> Any:
    """
    Parse script stdout. Scripts sometimes print progress text around the JSON,
    so fall back to locating the {"bins": ...} object.
    """
    text = (output or "").strip()
    try:
        return json.loads(text)
    except ValueError:
        pass

    match = _BINS_OBJECT_RE.search(text)
    if match:
        try:
            document, _ = json.JSONDecoder().raw_decode(text, match.start())
            return document
        except ValueError:
            pass

    raise ParseError(
        "The council script did not return readable data.",
        hint="The council website may have changed; try again later.",
        diagnostic=output,
    )


class GenericAdapter(SourceAdapter):
    def __init__(self, timeout: int | None = None, module: str | None = None):
        self.timeout = timeout or config.ADAPTER_TIMEOUT_SECONDS
        self.module = module or config.COLLECT_DATA_MODULE

    def build_command(self, plan: DispatchPlan) -> list[str]:
        command = [sys.executable, "-m", self.module, plan.council_id]
        if plan.target_url:
            command.append(plan.target_url)
        for flag, value in plan.identifier_args:
            command.extend([flag, value])
        command.extend(plan.extra_flags)
        return command

    def fetch(self, plan: DispatchPlan) -> Any:
        command = self.build_command(plan)
        env = dict(os.environ)
        env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(REPO_ROOT), env.get("PYTHONPATH")]))

        logger.info("Running council script: %s", " ".join(command[2:]))
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                cwd=str(REPO_ROOT),
                env=env,
            )
        except subprocess.TimeoutExpired as e:
            raise AdapterExecutionError(
                f"The council website did not answer within {self.timeout} seconds.",
                hint="Council sites are sometimes slow; try again later.",
                diagnostic=str(e),
            ) from e
        except OSError as e:
            raise AdapterExecutionError("Could not start the council script.", diagnostic=str(e)) from e

        if completed.returncode != 0:
            diagnostic = completed.stderr or completed.stdout
            logger.warning(
                "Council script for %s exited with %s: %s",
                plan.council_id,
                completed.returncode,
                diagnostic.strip()[-500:],
            )
            raise classify_adapter_failure(diagnostic, plan)

        return extract_json_document(completed.stdout)


# ---------------------------------------------------------------------------
# Standardized waste services API
# ---------------------------------------------------------------------------


class ScheduledCollection(BaseModel):
    model_config = ConfigDict(extra="ignore")

    date: str


class WasteService(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str | int
    name: str
    next_collections: list[ScheduledCollection] | None = Field(default=None, alias="nextCollections")
    href: str | None = None


class WasteServiceList(BaseModel):
    model_config = ConfigDict(extra="ignore")

    services: list[WasteService] = Field(default_factory=list)


class WasteServiceDetail(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str | None = None
    next_collections: list[ScheduledCollection] = Field(default_factory=list, alias="nextCollections")


class StandardizedApiAdapter(SourceAdapter):
    """
    Two steps: GET {url}/services?uprn=... then, for each service without
    inline nextCollections, GET its detail resource.

    Each fetch opens its own requests.Session unless one is injected.
    """

    def __init__(self, session: requests.Session | None = None, timeout: int | None = None):
        self.session = session
        self.timeout = timeout or config.HTTP_TIMEOUT_SECONDS

    def _get_json(self, session: requests.Session, step: str, url: str, params: dict | None = None) -> Any:
        try:
            response = session.get(
                url, params=params, headers={"Accept": "application/json"}, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise AdapterExecutionError(f"Waste API {step} request failed: {e}", diagnostic=str(e)) from e

        if response.status_code != 200:
            raise AdapterExecutionError(
                f"Waste API {step} request failed with HTTP {response.status_code}.",
                diagnostic=response.text[:500],
            )
        try:
            return response.json()
        except ValueError as e:
            raise AdapterExecutionError(
                f"Waste API {step} response was not JSON.", diagnostic=response.text[:500]
            ) from e

    def fetch(self, plan: DispatchPlan) -> Any:
        if self.session is not None:
            return self._fetch(self.session, plan)
        with requests.Session() as session:
            return self._fetch(session, plan)

    def _fetch(self, session: requests.Session, plan: DispatchPlan) -> dict:
        base_url = (plan.target_url or "").rstrip("/")
        uprn = plan.identifier("-u")

        listing = self._get_json(session, "service list", f"{base_url}/services", params={"uprn": uprn})
        if isinstance(listing, list):
            listing = {"services": listing}
        try:
            services = WasteServiceList.model_validate(listing).services
        except ValidationError as e:
            raise ParseError(f"Waste API service list was not in the expected format: {e.error_count()} errors.") from e

        bins = []
        for service in services:
            collections = service.next_collections
            if collections is None:
                detail_url = service.href or f"{base_url}/services/{service.id}"
                detail = self._get_json(
                    session, f"service detail ({service.name})", detail_url, params={"uprn": uprn}
                )
                try:
                    collections = WasteServiceDetail.model_validate(detail).next_collections
                except ValidationError as e:
                    raise ParseError(
                        f"Waste API detail for {service.name} was not in the expected format."
                    ) from e

            for collection in collections:
                try:
                    collection_date = parse_collection_date(collection.date)
                except ValueError:
                    logger.warning("Skipping unreadable date %r for %s", collection.date, service.name)
                    continue
                bins.append({"type": service.name, "collectionDate": collection_date.isoformat()})

        logger.info("Waste API returned %d collections across %d services", len(bins), len(services))
        return {"bins": bins}


def default_adapters() -> dict[Strategy, SourceAdapter]:
    return {
        Strategy.GENERIC_ADAPTER: GenericAdapter(),
        Strategy.STANDARDIZED_API: StandardizedApiAdapter(),
    }
