"""
Type-specific payloads carried by a work request
The `kind` tag selects the variant and must match the request type
"""

from typing import Literal, Optional
from pydantic import BaseModel, Field


class ItemClaimPayload(BaseModel):
    """Student claiming a found item"""
    kind: Literal["ITEM_CLAIM"] = "ITEM_CLAIM"
    item_id: Optional[str] = Field(None, description="Found item being claimed")
    lost_item_id: Optional[str] = Field(None, description="Claimant's lost item report")
    item_name: Optional[str] = None
    item_category: Optional[str] = None
    item_value: float = Field(default=0.0, ge=0, description="Estimated value in USD")
    claim_details: Optional[str] = Field(None, description="Why the claimant believes it is theirs")
    proof_description: Optional[str] = None
    identifying_features: Optional[str] = Field(None, description="Features only the owner would know")
    found_location_name: Optional[str] = None
    holding_enterprise_name: Optional[str] = None
    linked_dispute_id: Optional[str] = Field(None, description="Dispute this claim was folded into")
    match_score: Optional[float] = Field(None, ge=0, le=1)


class CrossCampusTransferPayload(BaseModel):
    """Transfer of a found item between university campuses"""
    kind: Literal["CROSS_CAMPUS_TRANSFER"] = "CROSS_CAMPUS_TRANSFER"
    item_id: Optional[str] = None
    lost_item_id: Optional[str] = Field(None, description="Matched lost item, closed on approval")
    item_name: Optional[str] = None
    source_campus_name: Optional[str] = None
    source_coordinator_id: Optional[str] = None
    destination_campus_name: Optional[str] = None
    student_id: Optional[str] = None
    student_name: Optional[str] = None
    student_email: Optional[str] = None
    pickup_location: Optional[str] = None
    transfer_method: Optional[str] = Field(None, description="In-person, Courier, Student pickup")
    match_score: Optional[float] = Field(None, ge=0, le=1)


class TransitToUniversityTransferPayload(BaseModel):
    """Item found on transit handed over to a university campus"""
    kind: Literal["TRANSIT_TO_UNIVERSITY_TRANSFER"] = "TRANSIT_TO_UNIVERSITY_TRANSFER"
    item_id: Optional[str] = None
    lost_item_id: Optional[str] = None
    item_name: Optional[str] = None
    station_name: Optional[str] = None
    route_number: Optional[str] = Field(None, description="e.g. Green Line, Bus 39")
    mbta_incident_number: Optional[str] = None
    university_name: Optional[str] = None
    campus_pickup_location: Optional[str] = None
    student_id: Optional[str] = None
    student_name: Optional[str] = None
    match_score: Optional[float] = Field(None, ge=0, le=1)


class AirportToUniversityTransferPayload(BaseModel):
    """Item found at the airport handed over to a university campus"""
    kind: Literal["AIRPORT_TO_UNIVERSITY_TRANSFER"] = "AIRPORT_TO_UNIVERSITY_TRANSFER"
    item_id: Optional[str] = None
    lost_item_id: Optional[str] = None
    item_name: Optional[str] = None
    estimated_value: float = Field(default=0.0, ge=0)
    terminal: Optional[str] = Field(None, description="e.g. Terminal A")
    airport_incident_number: Optional[str] = None
    was_in_secure_area: bool = False
    security_notes: Optional[str] = None
    campus_pickup_location: Optional[str] = None
    student_id: Optional[str] = None
    student_name: Optional[str] = None
    match_score: Optional[float] = Field(None, ge=0, le=1)


class PoliceEvidencePayload(BaseModel):
    """Police verification of a found item (stolen check, serial lookup)"""
    kind: Literal["POLICE_EVIDENCE_REQUEST"] = "POLICE_EVIDENCE_REQUEST"
    item_id: Optional[str] = None
    item_name: Optional[str] = None
    estimated_value: float = Field(default=0.0, ge=0)
    serial_number: Optional[str] = None
    imei_number: Optional[str] = None
    other_identifiers: Optional[str] = None
    verification_reason: Optional[str] = None
    is_stolen_check: bool = False
    verification_status: str = Field(default="Pending", description="Pending, Clear, Flagged, Stolen")
    case_number: Optional[str] = None


class EmergencyTransferPayload(BaseModel):
    """Time-critical transfer of travel documents from MBTA to the airport"""
    kind: Literal["MBTA_TO_AIRPORT_EMERGENCY"] = "MBTA_TO_AIRPORT_EMERGENCY"
    item_id: Optional[str] = None
    item_name: Optional[str] = None
    document_type: Optional[str] = Field(None, description="PASSPORT, DRIVERS_LICENSE, BOARDING_PASS")
    station_name: Optional[str] = None
    flight_number: Optional[str] = None
    flight_departure_time: Optional[str] = None
    airline: Optional[str] = None
    airport_terminal: Optional[str] = None
    traveler_name: Optional[str] = None
    traveler_phone: Optional[str] = None
    courier_method: Optional[str] = Field(None, description="MBTA_SHUTTLE, TAXI, POLICE_ESCORT")
    police_escort_requested: bool = False
