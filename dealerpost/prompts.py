"""
Prompt assembly for dealership posts.

`build_message` is a pure function: the same request always yields the same
instruction text and the same attachment order. The image model treats the
first attached image as the edit canvas, so ordering is part of each policy.
"""

import logging
from math import gcd
from typing import List, Literal, Optional, Union

from pydantic import BaseModel

from . import images
from .errors import InvalidRequest
from .schemas import PostRequest, PromptPolicy, RefineRequest

logger = logging.getLogger(__name__)

TEMPLATE_POLICIES = (PromptPolicy.TEMPLATE_LOOSE, PromptPolicy.TEMPLATE_STRICT)

CLOSING_DIRECTIVES = [
    "The image should be high-quality, professional, and suitable for social media marketing.",
    "Style: modern automotive photography, dramatic lighting, professional composition.",
    "Make it eye-catching and premium looking.",
]


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImageUrl(BaseModel):
    url: str


class ImagePart(BaseModel):
    type: Literal["image_url"] = "image_url"
    image_url: ImageUrl

    @classmethod
    def of(cls, ref: str) -> "ImagePart":
        return cls(image_url=ImageUrl(url=ref))


ContentPart = Union[TextPart, ImagePart]


class ModelMessage(BaseModel):
    policy: PromptPolicy
    parts: List[ContentPart]

    @property
    def instruction(self) -> str:
        return next(p.text for p in self.parts if isinstance(p, TextPart))

    @property
    def images(self) -> List[str]:
        return [p.image_url.url for p in self.parts if isinstance(p, ImagePart)]

    def to_chat_message(self) -> dict:
        return {"role": "user", "content": [p.model_dump() for p in self.parts]}


def vehicle_names(request: PostRequest) -> List[str]:
    names = [name.strip() for name in request.vehicleNames if name and name.strip()]
    if request.vehicleCount is not None:
        names = names[: request.vehicleCount]
    return names


def style_references(request: PostRequest) -> List[str]:
    return (
        images.present(request.exampleImages)
        + images.present(request.bannerImages)
        + images.present(request.styleImages)
    )


def resolve_policy(
    request: Union[PostRequest, RefineRequest], require_template: bool = False
) -> PromptPolicy:
    """Picks the prompt policy for a request, rejecting template policies without a template."""
    if isinstance(request, RefineRequest):
        return PromptPolicy.REFINE

    has_template = images.has_content(request.template)
    if request.policy in TEMPLATE_POLICIES and not has_template:
        raise InvalidRequest("Please upload a dealership template for this layout")
    if require_template and not has_template:
        raise InvalidRequest("Please upload a dealership template")

    if request.policy is not None:
        return request.policy
    return PromptPolicy.TEMPLATE_STRICT if has_template else PromptPolicy.FREE_COMPOSE


def _optional(value: Optional[str]) -> Optional[str]:
    return value.strip() if value and value.strip() else None


def _brief(request: PostRequest, names: List[str], policy: PromptPolicy) -> List[str]:
    dealership = _optional(request.dealershipName) or "the dealership"
    theme = request.backgroundTheme

    lines = [
        f"Create a professional automotive dealership promotional post for {dealership}.",
        f"Feature {len(names)} vehicle(s): {', '.join(names)}.",
        f"Background setting: {theme.value} ({theme.scene}).",
    ]

    # a template already carries the contact block
    if policy is PromptPolicy.FREE_COMPOSE:
        contact = [c for c in (_optional(request.dealershipAddress), _optional(request.dealershipPhone)) if c]
        if contact:
            lines.append(f"Include the dealership contact details: {', '.join(contact)}.")

    offer = _optional(request.specialFeature)
    if offer:
        lines.append(f"Highlight this special offer: {offer}.")
    keywords = _optional(request.customKeywords)
    if keywords:
        lines.append(f"Additional details: {keywords}.")
    return lines


def _template_size_directive(template: str) -> str:
    size = images.image_dimensions(template)
    if size is None:
        return (
            "OUTPUT SIZE: The output image must exactly match the template's dimensions and aspect ratio. "
            "Do not crop, resize, or change the aspect ratio."
        )
    width, height = size
    divisor = gcd(width, height) or 1
    return (
        f"OUTPUT SIZE: The output image must exactly match the template's dimensions of "
        f"{width}x{height} pixels (aspect ratio {width // divisor}:{height // divisor}). "
        "Do not crop, resize, or change the aspect ratio."
    )


def _template_directives(policy: PromptPolicy, template: str) -> List[str]:
    if policy is PromptPolicy.TEMPLATE_LOOSE:
        return [
            "IMPORTANT: Use the provided dealership template image as the base. "
            "Overlay the vehicles and promotional content on this template while preserving the logo, "
            "branding, and contact information visible in the template."
        ]
    return [
        "The FIRST attached image is the dealership template. Use it as the canvas and edit it in place.",
        _template_size_directive(template),
        "EDGE-TO-EDGE: Fill the entire canvas edge to edge with zero whitespace. "
        "No white borders, no blank margins, no letterboxing, no padding.",
        "BRANDING: The template's logo, address, and footer must remain fully visible and unaltered. "
        "Do not cover, move, redraw, or restyle them.",
    ]


def _attachment_notes(vehicle_photos: List[str], references: List[str]) -> List[str]:
    notes = []
    if vehicle_photos:
        notes.append(
            "Use the provided vehicle photos in the composition, keeping each vehicle's shape, colour, and details accurate."
        )
    if references:
        notes.append(
            f"The last {len(references)} attached image(s) are style references (example posts, banners, textures). "
            "Use them for inspiration on layout, typography, and mood only; never copy them verbatim."
        )
    return notes


def _generate_message(request: PostRequest, policy: PromptPolicy) -> ModelMessage:
    names = vehicle_names(request)
    if not names:
        raise InvalidRequest("Please enter at least one vehicle name")

    template = request.template.strip() if policy in TEMPLATE_POLICIES else None
    vehicle_photos = images.present(request.vehicleImages)
    references = style_references(request)

    lines = _brief(request, names, policy)
    if template:
        lines += _template_directives(policy, template)
    lines += _attachment_notes(vehicle_photos, references)
    lines += CLOSING_DIRECTIVES
    text = TextPart(text=" ".join(lines))

    attachments = [ImagePart.of(ref) for ref in vehicle_photos + references]
    if policy is PromptPolicy.TEMPLATE_STRICT:
        parts = [ImagePart.of(template), text] + attachments
    elif policy is PromptPolicy.TEMPLATE_LOOSE:
        parts = [text, ImagePart.of(template)] + attachments
    else:
        parts = [text] + attachments
    return ModelMessage(policy=policy, parts=parts)


def _refine_message(request: RefineRequest) -> ModelMessage:
    lines = [
        "Edit the attached image, a previously generated dealership promotional post.",
        f"Apply this change: {request.refinementInstruction}",
        "Keep everything else in the image unchanged, including its size and layout.",
    ]
    parts = [ImagePart.of(request.currentImage.strip())]
    if images.has_content(request.template):
        lines.append(
            "The dealership template is attached after it for reference; keep the logo and branding consistent with it."
        )
        parts.append(ImagePart.of(request.template.strip()))
    return ModelMessage(policy=PromptPolicy.REFINE, parts=[TextPart(text=" ".join(lines))] + parts)


def build_message(
    request: Union[PostRequest, RefineRequest], require_template: bool = False
) -> ModelMessage:
    policy = resolve_policy(request, require_template)
    if policy is PromptPolicy.REFINE:
        message = _refine_message(request)
    else:
        message = _generate_message(request, policy)

    logger.info(
        "Built %s prompt with %d image(s): %s",
        policy.value,
        len(message.images),
        [images.describe(ref) for ref in message.images],
    )
    logger.info("Generated prompt: %s", message.instruction)
    return message
