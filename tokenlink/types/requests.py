from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class ResolveRequest(BaseModel):
    queries: List[str] = Field(description="Tickers, contract addresses or name phrases to resolve")
    explain: bool = Field(default=False, description="Include the winning pool and outcome reason per query")
    timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Override the batch deadline; unresolved queries fall back when it passes",
    )


class MentionText(BaseModel):
    id: str = Field(description="Caller-side identifier of the text (e.g. a tweet id)")
    text: Optional[str] = Field(default=None, description="Raw post text")


class DetectMentionsRequest(BaseModel):
    texts: List[MentionText] = Field(description="Texts to scan for token mentions")
    timeout_seconds: Optional[float] = Field(default=None, gt=0, description="Override the batch deadline")

    def as_mapping(self) -> Dict[str, Optional[str]]:
        return {item.id: item.text for item in self.texts}
