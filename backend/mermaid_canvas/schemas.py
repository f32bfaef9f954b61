from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AIRequest(_Request):
    """Fields every AI-backed endpoint accepts for choosing the upstream model"""
    ai_config: Optional[Dict[str, Any]] = Field(default=None, alias="aiConfig")  # {apiUrl, apiKey, modelName}
    access_password: Optional[str] = Field(default=None, alias="accessPassword")
    selected_model: Optional[str] = Field(default=None, alias="selectedModel")


class GenerateMermaidRequest(AIRequest):
    text: str = ""
    diagram_type: str = Field(default="auto", alias="diagramType")
    language: str = "zh"
    stream: bool = True  # false -> single JSON response


class OptimizeRequest(AIRequest):
    mermaid_code: str = Field(default="", alias="mermaidCode")
    instruction: str = ""
    group_list: Optional[List[str]] = Field(default=None, alias="groupList")


class SuggestionsRequest(AIRequest):
    mermaid_code: str = Field(default="", alias="mermaidCode")


class ConvertRequest(_Request):
    """Excalidraw scene -> Mermaid"""
    elements: List[Dict[str, Any]] = Field(default_factory=list)
    diagram_type: str = Field(default="flowchart", alias="diagramType")
    direction: str = "TD"
    include_colors: bool = Field(default=True, alias="includeColors")
    include_groups: bool = Field(default=False, alias="includeGroups")
    group_labels: Dict[str, str] = Field(default_factory=dict, alias="groupLabels")
