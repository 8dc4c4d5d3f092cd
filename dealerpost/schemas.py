from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from .errors import InvalidRequest


class BackgroundTheme(str, Enum):
    SHOWROOM = "showroom"
    ROAD = "road"
    MUD = "mud"
    SUNSET = "sunset"
    RAIN = "rain"
    DESERT = "desert"
    MOUNTAIN = "mountain"
    SHIP = "ship"

    @property
    def label(self) -> str:
        return THEME_LABELS[self]

    @property
    def scene(self) -> str:
        return THEME_SCENES[self]


THEME_LABELS = {
    BackgroundTheme.SHOWROOM: "In Showroom",
    BackgroundTheme.ROAD: "On Road",
    BackgroundTheme.MUD: "In Mud",
    BackgroundTheme.SUNSET: "Sunset Background",
    BackgroundTheme.RAIN: "Rainy Background",
    BackgroundTheme.DESERT: "Desert",
    BackgroundTheme.MOUNTAIN: "Mountain",
    BackgroundTheme.SHIP: "On a Ship",
}

THEME_SCENES = {
    BackgroundTheme.SHOWROOM: "a bright, polished dealership showroom with reflective floors",
    BackgroundTheme.ROAD: "an open highway with motion and a clear sky",
    BackgroundTheme.MUD: "a rugged off-road mud trail with splashes and tyre tracks",
    BackgroundTheme.SUNSET: "a dramatic golden-hour sunset sky with warm rim light",
    BackgroundTheme.RAIN: "a moody rainy street with wet reflections and light drizzle",
    BackgroundTheme.DESERT: "sweeping desert dunes under a hot, clear sky",
    BackgroundTheme.MOUNTAIN: "a winding mountain pass with snow-capped peaks behind",
    BackgroundTheme.SHIP: "the deck of a large ship at sea with open water around",
}


class PromptPolicy(str, Enum):
    FREE_COMPOSE = "free"
    TEMPLATE_LOOSE = "template_loose"
    TEMPLATE_STRICT = "template_strict"
    REFINE = "refine"


class PostRequest(BaseModel):
    mode: Literal["generate"] = "generate"
    dealershipName: Optional[str] = None
    dealershipAddress: Optional[str] = None
    dealershipPhone: Optional[str] = None
    vehicleCount: Optional[int] = Field(
        None, ge=1, validation_alias=AliasChoices("vehicleCount", "numberOfVehicles")
    )
    vehicleNames: List[Optional[str]] = Field(default_factory=list)
    vehicleImages: List[Optional[str]] = Field(default_factory=list)
    template: Optional[str] = Field(
        None, validation_alias=AliasChoices("template", "dealershipTemplate")
    )
    specialFeature: Optional[str] = None
    backgroundTheme: BackgroundTheme
    customKeywords: Optional[str] = None
    exampleImages: List[Optional[str]] = Field(default_factory=list)
    bannerImages: List[Optional[str]] = Field(default_factory=list)
    styleImages: List[Optional[str]] = Field(default_factory=list)
    policy: Optional[PromptPolicy] = None

    @field_validator(
        "vehicleNames", "vehicleImages", "exampleImages", "bannerImages", "styleImages", mode="before"
    )
    @classmethod
    def _null_as_empty(cls, value):
        return [] if value is None else value

    @field_validator("policy")
    @classmethod
    def _generate_policies_only(cls, value):
        if value is PromptPolicy.REFINE:
            raise ValueError("use mode 'refine' to refine an image")
        return value


class RefineRequest(BaseModel):
    mode: Literal["refine"]
    currentImage: str
    refinementInstruction: str
    template: Optional[str] = Field(
        None, validation_alias=AliasChoices("template", "dealershipTemplate")
    )

    @field_validator("currentImage", "refinementInstruction")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value


class GenerationResult(BaseModel):
    imageUrl: str = Field(..., description="Reference to the generated image.")
    prompt: str = Field(..., description="The exact instruction sent to the model.")


def _first_error(error: ValidationError) -> str:
    err = error.errors()[0]
    location = ".".join(str(part) for part in err.get("loc", ()))
    return f"{location}: {err['msg']}" if location else err["msg"]


def parse_request(payload: Any) -> Union[PostRequest, RefineRequest]:
    """Turns an inbound JSON body into a PostRequest or RefineRequest, keyed on `mode`."""
    if not isinstance(payload, dict):
        raise InvalidRequest("Request body must be a JSON object")

    model = RefineRequest if payload.get("mode") == "refine" else PostRequest
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise InvalidRequest(f"Invalid request: {_first_error(e)}") from e


def theme_catalog() -> List[Dict[str, str]]:
    return [{"value": theme.value, "label": theme.label} for theme in BackgroundTheme]
