"""
Request Type Registry
Loads the approver chains, priorities and SLA windows from YAML configuration
All routing rules are table-driven, not hardcoded
"""

import os
import yaml
from typing import Dict, Any, List, Optional
from datetime import datetime

from lostfound.config.settings import DEFAULT_REQUEST_TYPES_PATH
from lostfound.errors import ValidationError
from lostfound.models.common import (
    ApproverScope,
    ApproverStep,
    RequestPriority,
    RequestType,
    Role,
)


class RequestTypeRegistry:
    """
    Static catalog mapping each request type to its approver chain, default priority and SLA
    Loaded once at startup and shared by every engine component
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the registry from a configuration file

        Args:
            config_path: Path to request_types.yaml
        """
        if config_path is None:
            config_path = os.getenv("REQUEST_TYPES_CONFIG_PATH", DEFAULT_REQUEST_TYPES_PATH)

        self.config_path = config_path
        self.config: Dict[str, Any] = {}
        self.version: str = "1.0.0"
        self.last_loaded: Optional[datetime] = None
        self._chains: Dict[RequestType, List[ApproverStep]] = {}

        self._load()

    def _load(self) -> None:
        """Load and check the request type table"""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f) or {}
        except FileNotFoundError as e:
            raise FileNotFoundError(f"Request type configuration file not found: {e}")
        except yaml.YAMLError as e:
            raise ValueError(f"Error parsing request type YAML: {e}")

        types_config = config.get('request_types', {})
        chains: Dict[RequestType, List[ApproverStep]] = {}
        for request_type in RequestType:
            entry = types_config.get(request_type.value)
            if entry is None:
                raise ValueError(f"No configuration for request type {request_type.value}")
            try:
                chains[request_type] = [
                    ApproverStep(role=Role(step['role']), scope=ApproverScope(step.get('scope', 'any_org')))
                    for step in entry.get('approver_chain', [])
                ]
            except (KeyError, ValueError) as e:
                raise ValueError(f"Invalid approver chain for {request_type.value}: {e}")
            if not chains[request_type]:
                raise ValueError(f"Empty approver chain for {request_type.value}")

        self.config = config
        self._chains = chains
        self.version = str(config.get('version', '1.0.0'))
        self.last_loaded = datetime.now()

    def reload(self) -> None:
        """Reload the table from disk"""
        self._load()

    def _type_config(self, request_type: RequestType) -> Dict[str, Any]:
        try:
            request_type = RequestType(request_type)
        except ValueError:
            raise ValidationError([f"Unknown request type: {request_type}"])
        return self.config.get('request_types', {}).get(request_type.value, {})

    # Approver Chains

    def approver_chain_for(self, request_type: RequestType) -> List[ApproverStep]:
        """
        Get the ordered approver chain for a request type

        Returns:
            A fresh list of ApproverStep (role + organization scope)
        """
        self._type_config(request_type)
        return [step.model_copy() for step in self._chains[RequestType(request_type)]]

    def approver_roles_for(self, request_type: RequestType) -> List[Role]:
        return [step.role for step in self.approver_chain_for(request_type)]

    def label_for(self, request_type: RequestType) -> str:
        return self._type_config(request_type).get('label', RequestType(request_type).value)

    # Priority and SLA

    def default_priority_for(self, request_type: RequestType) -> RequestPriority:
        return RequestPriority(self._type_config(request_type).get('default_priority', 'NORMAL'))

    def forced_priority_for(self, request_type: RequestType) -> Optional[RequestPriority]:
        """Priority that overrides any caller input, if the type has one"""
        forced = self._type_config(request_type).get('forced_priority')
        return RequestPriority(forced) if forced else None

    def sla_hours_for(self, request_type: RequestType, priority: RequestPriority) -> float:
        """
        Get the SLA window for a request type at a given priority
        Type-specific overrides win over the global per-priority table
        """
        priority = RequestPriority(priority)
        overrides = self._type_config(request_type).get('sla_hours', {})
        if priority.value in overrides:
            return float(overrides[priority.value])
        defaults = {'URGENT': 4, 'HIGH': 24, 'NORMAL': 72, 'LOW': 168}
        return float(self.config.get('sla_hours', {}).get(priority.value, defaults[priority.value]))

    def sla_warning_fraction(self) -> float:
        return float(self.config.get('sla_warning_fraction', 0.2))

    # Validation Rules

    def required_fields_for(self, request_type: RequestType) -> List[str]:
        """
        Get the required field paths for a request type

        Returns:
            Paths such as 'target_organization_id' or 'payload.item_id'
        """
        common = list(self.config.get('common_required_fields', []))
        return common + list(self._type_config(request_type).get('required_fields', []))

    def high_value_threshold(self) -> float:
        return float(self.config.get('high_value_threshold', 500.0))

    # Routing Rules

    def cross_org_roles(self) -> List[Role]:
        """Roles that see matching requests in every organization"""
        return [Role(role) for role in self.config.get('cross_org_roles', [])]

    # Requester Trust Rules

    def low_trust_threshold(self) -> float:
        """Requesters scoring below this get a review flag"""
        return float(self.config.get('trust', {}).get('low_trust_threshold', 50.0))

    def probation_threshold(self) -> float:
        """Requesters scoring below this are on probation; NORMAL requests go to HIGH"""
        return float(self.config.get('trust', {}).get('probation_threshold', 30.0))

    # Dispute Rules

    def dispute_rules(self) -> Dict[str, Any]:
        return self.config.get('dispute', {})

    def default_panel_votes_required(self) -> int:
        return int(self.dispute_rules().get('default_panel_votes_required', 3))

    def min_claimants(self) -> int:
        return int(self.dispute_rules().get('min_claimants', 2))

    def police_claimant_threshold(self) -> int:
        return int(self.dispute_rules().get('police_claimant_threshold', 3))

    def panel_roles(self) -> List[Role]:
        return [Role(role) for role in self.dispute_rules().get('panel_roles', [])]

    def resolver_roles(self) -> List[Role]:
        return [Role(role) for role in self.dispute_rules().get('resolver_roles', [])]

    # Metadata

    def get_version(self) -> str:
        return self.version

    def get_last_loaded_time(self) -> Optional[datetime]:
        return self.last_loaded
