"""Prompt text for every call made to the generation engine."""

from __future__ import annotations


def variation_prompt(pose_instruction: str, style_text: str, background_text: str) -> str:
    style = f", in the style of {style_text}" if style_text else ""
    return (
        "Re-create the scene from the provided image featuring the same person. "
        f'The person\'s new pose and expression must be: "{pose_instruction}"{style}. '
        f"The background must be: {background_text}."
    )


def pose_prompts_request(context_text: str, count: int) -> str:
    context = context_text or "general product advertising"
    return (
        "You are a creative director for a product photoshoot. Based on the user's "
        "provided product image and context, generate a JSON object containing an array "
        f"of exactly {count} distinct and creative pose descriptions. Each description "
        "should be a short, actionable phrase for a model, in English. "
        f'The context is: "{context}".'
    )


def product_pose_prompt(pose_instruction: str, background_text: str) -> str:
    return (
        "From the two provided images, create a new photorealistic image. It must feature "
        "the person from the first image holding or presenting the product from the second "
        f'image. The person\'s pose and expression must be: "{pose_instruction}". '
        f"The background must be: {background_text}."
    )


def base_mockup_prompt(template: str, color: str, scene: str, lighting: str) -> str:
    return (
        "Create a highly photorealistic **blank** product mockup image.\n"
        f"- Product type: {template}\n"
        f"- Product color: {color}\n"
        f"- Scene/background: {scene}\n"
        f"- Lighting: {lighting}\n"
        "The result must be clean, professional and ready for a design to be applied. "
        "Do not add any logo or text."
    )


def design_instruction(placement: str, size: str, remove_background: bool) -> str:
    lines = [
        "Use the second (design) image and apply it to the product in the first "
        "(template) image."
    ]
    if remove_background:
        lines.append(
            "Ignore any white or plain background in the design image; make it "
            "transparent and blend the design seamlessly into the product's texture, "
            "folds, contours and lighting."
        )
    lines.append(f"- Design size: {size}")
    lines.append(f"- Design placement: {placement}")
    lines.append("The final result must look like a realistic, professional print on the product.")
    return "\n".join(lines)
