"""Route editing request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from ..models.domain import DeliveryPoint, DeliveryType, Description, Route, SavedRowOrder

DeliveryLiteral = Literal["Daily", "Weekday", "Alt 1", "Alt 2"]


class DescriptionModel(BaseModel):
    key: str
    value: str = ""


class DeliveryPointModel(BaseModel):
    code: str = Field(..., min_length=1)
    name: str = ""
    delivery: DeliveryLiteral = "Daily"
    latitude: float = 0.0
    longitude: float = 0.0
    descriptions: List[DescriptionModel] = Field(default_factory=list)
    qrCodeImageUrl: Optional[str] = None
    qrCodeDestinationUrl: Optional[str] = None

    @classmethod
    def from_domain(cls, point: DeliveryPoint) -> "DeliveryPointModel":
        return cls(
            code=point.code,
            name=point.name,
            delivery=point.delivery.value,
            latitude=point.latitude,
            longitude=point.longitude,
            descriptions=[DescriptionModel(key=item.key, value=item.value) for item in point.descriptions],
            qrCodeImageUrl=point.qr_code_image_url,
            qrCodeDestinationUrl=point.qr_code_destination_url,
        )

    def to_domain(self) -> DeliveryPoint:
        return DeliveryPoint(
            code=self.code.strip(),
            name=self.name.strip(),
            delivery=DeliveryType(self.delivery),
            latitude=self.latitude,
            longitude=self.longitude,
            descriptions=[Description(key=item.key, value=item.value) for item in self.descriptions],
            qr_code_image_url=self.qrCodeImageUrl,
            qr_code_destination_url=self.qrCodeDestinationUrl,
        )


class DeliveryPointPatch(BaseModel):
    """Partial update of a delivery point; only fields sent are applied."""

    code: Optional[str] = None
    name: Optional[str] = None
    delivery: Optional[DeliveryLiteral] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    descriptions: Optional[List[DescriptionModel]] = None
    qrCodeImageUrl: Optional[str] = None
    qrCodeDestinationUrl: Optional[str] = None

    def changed_fields(self) -> Dict[str, object]:
        """Set fields keyed by their domain attribute name."""
        renames = {
            "qrCodeImageUrl": "qr_code_image_url",
            "qrCodeDestinationUrl": "qr_code_destination_url",
        }
        return {renames.get(name, name): value for name, value in self.model_dump(exclude_unset=True).items()}


class RouteModel(BaseModel):
    id: str
    name: str
    code: str
    shift: str = "AM"
    deliveryPoints: List[DeliveryPointModel] = Field(default_factory=list)
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_domain(cls, route: Route) -> "RouteModel":
        return cls(
            id=route.id,
            name=route.name,
            code=route.code,
            shift=route.shift,
            deliveryPoints=[DeliveryPointModel.from_domain(point) for point in route.delivery_points],
            updatedAt=route.updated_at,
        )


class RouteCreateRequest(BaseModel):
    id: Optional[str] = Field(default=None, description="Route id; generated when omitted.")
    name: str = Field(..., min_length=1)
    code: str = ""
    shift: str = "AM"
    deliveryPoints: List[DeliveryPointModel] = Field(default_factory=list)


class RouteUpdateRequest(BaseModel):
    name: Optional[str] = None
    code: Optional[str] = None
    shift: Optional[str] = None


class MovePointRequest(BaseModel):
    toRouteId: str
    index: Optional[int] = Field(default=None, ge=0)


class PendingMarkerModel(BaseModel):
    code: str
    field: str


class SessionStatusResponse(BaseModel):
    state: str
    hasUnsavedChanges: bool
    pending: List[PendingMarkerModel]


class CommitResponse(BaseModel):
    success: bool = True
    changes: Dict[str, List[str]]
    changelogWritten: int


class RouteRowModel(BaseModel):
    number: int
    point: DeliveryPointModel
    activeToday: bool
    distanceKm: Optional[float] = None
    segmentKm: Optional[float] = None
    km: Optional[str] = None
    pendingFields: List[str] = Field(default_factory=list)


class RouteRowsResponse(BaseModel):
    routeId: str
    mode: Literal["direct", "chain"]
    rows: List[RouteRowModel]


class SavedOrderModel(BaseModel):
    id: str
    label: str
    order: List[str]

    @classmethod
    def from_domain(cls, order: SavedRowOrder) -> "SavedOrderModel":
        return cls(id=order.id, label=order.label, order=list(order.order))


class PositionModel(BaseModel):
    code: str
    position: str = ""


class PositionRowModel(PositionModel):
    name: str = ""


class PositionDraftRequest(BaseModel):
    routeId: str
    positions: List[PositionModel] = Field(default_factory=list)
    label: Optional[str] = None


class PositionDraftResponse(BaseModel):
    rows: List[PositionRowModel]


class SavedOrderRenameRequest(BaseModel):
    label: str = Field(..., min_length=1)
