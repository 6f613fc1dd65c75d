from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class TokenIdentityModel(BaseModel):
    token_key: str = Field(description="Canonical contract address, or the normalized query when unresolved")
    token_display: str = Field(description="Human label such as $BONK or a shortened address")
    confidence: int = Field(ge=0, le=100, description="Confidence score 0-100")


class CandidateModel(BaseModel):
    address: str
    symbol: str
    name: str = ""
    venue_name: str
    venue_score: int
    volume_24h_usd: float
    liquidity_usd: float
    market_cap_usd: float
    quote_symbol: str
    trending_boost: float
    network: str
    query: str


class OutcomeModel(TokenIdentityModel):
    query: str = Field(description="Normalized query")
    mode: str = Field(description="ticker, address or name")
    reason: str = Field(description="resolved, no_candidates, below_liquidity_guard, not_an_address or cancelled")
    candidates_considered: int = Field(default=0, description="Candidates that reached ranking")
    winner: Optional[CandidateModel] = Field(default=None, description="Winning pool side when resolved")


class ResolveResponse(BaseModel):
    mode: str = Field(description="Resolution mode of the batch")
    results: Dict[str, TokenIdentityModel] = Field(default_factory=dict, description="Identity per normalized query")
    explain: Dict[str, OutcomeModel] = Field(default_factory=dict, description="Outcome details when requested")


class ResolvedMentionModel(BaseModel):
    text_id: str
    token_key: str
    token_display: str
    confidence: int = Field(ge=0, le=100)
    source: str = Field(description="ca, ticker or phrase")
    trigger_key: str = Field(description="Deterministic key of the text that triggered the mention")
    trigger_text: str


class DetectMentionsResponse(BaseModel):
    rows: List[ResolvedMentionModel] = Field(default_factory=list, description="One row per text and trigger")
    scanned_texts: int = Field(default=0, description="Number of texts scanned")
    counts: Dict[str, int] = Field(default_factory=dict, description="Distinct tickers, names and addresses found")
