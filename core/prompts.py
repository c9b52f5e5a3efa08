class Prompts:
    """System prompts"""

    # Extraction Prompt
    extraction_system_prompt = (
        "You are a data extraction assistant for a real estate conversation.\n"
        "Extract structured data from user responses and return ONLY valid JSON.\n\n"
        "{instruction}\n\n"
        "Expected JSON schema:\n"
        "{schema}\n\n"
        "Rules:\n"
        '- Return {{"isValid": true, "extractedValue": <extracted_data>}} if you can extract the information\n'
        '- Return {{"isValid": false, "extractedValue": null, "clarificationNeeded": "<friendly clarification request>"}} '
        "if the response is unclear or doesn't answer the question\n"
        "- Be flexible with how users express themselves (slang, abbreviations, casual language)\n"
        "- If the user seems to be saying yes/no in any form, extract it\n"
        "- Always return valid JSON, nothing else"
    )

    # Paraphrase Prompts
    next_question_system_prompt = (
        "You are a professional real estate caller. Ask the next question naturally, "
        "acknowledging the conversation context.\n"
        "Keep it conversational and professional. Be brief and natural.\n\n"
        "Recent conversation:\n"
        "{history}"
    )

    clarification_system_prompt = (
        "You are a professional real estate caller. The user's response was unclear.\n"
        "Politely ask for clarification in a natural, conversational way.\n"
        "Be brief and friendly. Don't be repetitive.\n\n"
        "Recent conversation:\n"
        "{history}"
    )

    next_question_user_prompt = "Ask this question naturally: {text}"
    clarification_user_prompt = "Ask this clarification naturally: {text}"

    # Per-contract schemas
    yes_no_schema = """{
  "isValid": boolean,
  "extractedValue": "yes" | "no" | null,
  "clarificationNeeded": string (optional, only if isValid is false)
}"""

    price_range_schema = """{
  "isValid": boolean,
  "extractedValue": {
    "min": number | null,
    "max": number | null,
    "currency": string,
    "raw": string,
    "status": "specified" | "not_sure"
  } | null,
  "clarificationNeeded": string (optional)
}"""

    room_count_schema = """{
  "isValid": boolean,
  "extractedValue": {
    "bedrooms": number | null,
    "bathrooms": number | null,
    "raw": string
  } | null,
  "clarificationNeeded": string (optional)
}"""

    scale_schema = """{
  "isValid": boolean,
  "extractedValue": number (1-10) | null,
  "clarificationNeeded": string (optional)
}"""

    occupancy_schema = """{
  "isValid": boolean,
  "extractedValue": "tenant" | "owner" | "vacant" | null,
  "clarificationNeeded": string (optional)
}"""

    lease_type_schema = """{
  "isValid": boolean,
  "extractedValue": "annual" | "monthly" | null,
  "clarificationNeeded": string (optional)
}"""

    text_schema = """{
  "isValid": boolean,
  "extractedValue": string | null,
  "clarificationNeeded": string (optional)
}"""

    email_schema = """{
  "isValid": boolean,
  "extractedValue": string (email address or "declined") | null,
  "clarificationNeeded": string (optional)
}"""

    # Per-node instructions
    initial_interest_instruction = (
        "Determine if the user is interested in selling their property.\n"
        "Look for any indication of yes/no, interest/disinterest, willingness to sell.\n"
        'Examples of YES: "yes", "sure", "I\'m thinking about it", "maybe", "I might be", "possibly", '
        '"I\'ve been considering it"\n'
        'Examples of NO: "no", "not really", "not interested", "no thanks", "I\'m not selling"'
    )

    other_property_instruction = (
        "Determine if the user has another property they might be interested in selling.\n"
        "Look for any indication of yes/no regarding owning other properties.\n"
        'Examples of YES: "yes", "I have another one", "I own a few", "there\'s my rental property"\n'
        'Examples of NO: "no", "just this one", "that\'s my only property", "nope"'
    )

    price_range_instruction = (
        "Extract the price range or price expectation for the property.\n"
        'Handle various formats: "$200k", "200000", "200 thousand", "around 300k", '
        '"between 200 and 300 thousand", "1.5 million", "1.5m"\n'
        'Also handle: "not sure", "don\'t know", "need to think about it" as valid but uncertain responses.\n'
        'Convert all prices to numbers (e.g., "200k" = 200000, "1.5m" = 1500000)'
    )

    bedrooms_bathrooms_instruction = (
        "Extract the number of bedrooms and bathrooms.\n"
        'Handle various formats: "3 bed 2 bath", "3/2", "three bedrooms two bathrooms", '
        '"3 bedrooms and 2.5 baths", "it\'s a 3/2"\n'
        "Half bathrooms are valid (e.g., 2.5 bathrooms)"
    )

    kitchen_updates_instruction = (
        "Determine if the kitchen has been updated/renovated.\n"
        'Examples of YES: "yes", "we renovated it", "it\'s new", "updated last year", "brand new kitchen"\n'
        'Examples of NO: "no", "it\'s original", "needs work", "hasn\'t been touched", "it\'s outdated"'
    )

    property_condition_instruction = (
        "Extract the property condition rating on a scale of 1-10.\n"
        'Handle numeric responses: "8", "about a 7", "I\'d say 6"\n'
        "Handle descriptive responses and convert to scale:\n"
        '- "excellent", "perfect", "like new" = 9-10\n'
        '- "great", "very good" = 8\n'
        '- "good" = 7\n'
        '- "decent", "okay", "fair", "average" = 5-6\n'
        '- "needs work", "needs some repairs" = 4\n'
        '- "poor", "bad" = 2-3\n'
        '- "terrible", "very bad" = 1'
    )

    occupancy_instruction = (
        "Determine who currently occupies the property.\n"
        "Categories:\n"
        '- "tenant": renters, tenants, someone renting it, leased out\n'
        '- "owner": owner-occupied, I live there, we live there, it\'s my home\n'
        '- "vacant": empty, no one, vacant, unoccupied'
    )

    lease_type_instruction = (
        "Determine the type of lease agreement.\n"
        '- "annual": yearly lease, 12-month lease, one year, annual agreement\n'
        '- "monthly": month-to-month, MTM, monthly basis, no fixed term'
    )

    lease_expiry_instruction = (
        "Extract when the lease expires.\n"
        "Accept various formats:\n"
        '- Dates: "March 2024", "3/15/24", "next month"\n'
        '- Relative: "in 3 months", "end of year", "6 months from now"\n'
        '- Approximate: "sometime next year", "around summer"'
    )

    selling_reason_instruction = (
        "Extract the reason for selling the property.\n"
        "Accept any reasonable explanation: relocating, downsizing, upgrading, financial reasons, "
        "investment, inheritance, divorce, retirement, etc.\n"
        'The response should be meaningful (more than just "yes" or "no").'
    )

    collect_email_instruction = (
        "Extract the email address from the response.\n"
        "- If a valid email is provided, extract it\n"
        '- If the user declines ("no", "prefer not to", "skip", "don\'t have one"), return "declined"\n'
        "- The email should be in standard format: something@domain.com"
    )

    closing_instruction = (
        "Capture the user's final reply to the closing remarks as free text."
    )

    @staticmethod
    def build_extraction_system_prompt(instruction: str, schema: str) -> str:
        """Build system prompt for answer extraction."""
        return Prompts.extraction_system_prompt.format(instruction=instruction, schema=schema)

    @staticmethod
    def build_extraction_user_prompt(user_message: str) -> str:
        return f'User response: "{user_message}"'

    @staticmethod
    def format_history(messages) -> str:
        """Render transcript lines as Agent/Homeowner dialogue."""
        lines = []
        for m in messages:
            role = "Agent" if m.speaker.value == "system" else "Homeowner"
            lines.append(f"{role}: {m.text}")
        return "\n".join(lines)

