from typing import List, Optional
from pydantic import BaseModel, Field

from app.catalog.plans import PaymentMethod

class PlanOut(BaseModel):
    id: str
    name: str
    price: int
    duration: str
    features: List[str] = Field(default_factory=list)
    recommended: bool = False

class PaymentMethodOut(BaseModel):
    id: PaymentMethod
    displayName: str

class Destination(BaseModel):
    method: PaymentMethod
    accountName: str
    accountNumber: str

class CreateAttemptRequest(BaseModel):
    planId: str

class SelectMethodRequest(BaseModel):
    method: str

class EvidenceRequest(BaseModel):
    # Base64 image bytes, or a data URL ("data:image/png;base64,....")
    image: str = Field(..., min_length=1)
    mimeType: Optional[str] = None

class AttemptResponse(BaseModel):
    attemptId: str
    planId: str
    planName: str
    amount: int
    state: str
    method: Optional[PaymentMethod] = None
    destination: Optional[Destination] = None
    lastFailureReason: Optional[str] = None
    verifiedAmount: Optional[float] = None
    verifiedProvider: Optional[str] = None

class EntitlementResponse(BaseModel):
    isPremium: bool
    planId: Optional[str] = None
    grantedAtEpoch: Optional[int] = None
