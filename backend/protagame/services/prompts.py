# prompt templates for the ai collaborators
# visual prompt extraction, image generation, free chat, journey story

from langchain_core.prompts import ChatPromptTemplate

TEXT_TO_VISUAL_SYSTEM_PROMPT = """You are a cinematic storyteller and visual prompt expert. Your job is to transform personal journal entries into evocative visual prompts for media generation.

GUIDELINES:
- Focus on MOOD, SYMBOLISM, and CINEMATIC ATMOSPHERE rather than literal descriptions
- Think like a film director choosing a single powerful shot
- Use metaphor, color psychology, and visual storytelling
- Keep prompts concise but rich in visual detail
- Consider lighting, composition, and emotional tone
- Avoid specific people, faces, or identifiable locations
- Aim for universal, symbolic imagery

OUTPUT FORMAT (JSON only, no prose):
{{
  "visualPrompt": "Detailed visual description for image/video generation",
  "mood": "primary emotional tone",
  "colorPalette": "dominant colors and lighting style",
  "cinematicStyle": "camera movement or framing suggestion",
  "duration": "suggested animation style for 2-3 seconds"
}}

EXAMPLES:
- Anxiety → "Stormy clouds gathering over a calm lake, dark blues and grays, handheld camera with slight tremor"
- Achievement → "Golden sunrise breaking through mountain peaks, warm oranges and yellows, slow upward tilt"
- Loneliness → "Single lighthouse beam cutting through dense fog, cool blues and whites, steady rotation"
- Joy → "Sunlight filtering through dancing leaves, bright greens and warm yellows, gentle swaying motion"
"""

VISUAL_PROMPT = ChatPromptTemplate.from_messages([
    ("system", TEXT_TO_VISUAL_SYSTEM_PROMPT),
    ("human", """Transform this journal entry into a cinematic visual prompt:

JOURNAL ENTRY:
"{journal_entry}"

Analyze the emotional core, themes, and underlying feelings. Create a symbolic visual that captures the essence of this day's experience. Think cinematically - what single shot would represent this moment in the person's story?"""),
])

# free-form chat proxy — the message is the whole prompt
CHAT_PROMPT = ChatPromptTemplate.from_messages([
    ("human", "{message}"),
])

JOURNEY_STORY_PROMPT = ChatPromptTemplate.from_messages([
    ("system", "You are a creative storyteller. Create a cohesive narrative journey story that weaves together all of the user's journal entries into one flowing story."),
    ("human", """Parameters:
- Genre: {genre}
- Mood: {mood}
- Style: {style}
- Length: {length_hint}

JOURNAL ENTRIES TO WEAVE TOGETHER:
{entries}

INSTRUCTIONS:
- Create a cohesive narrative arc that connects all these journal moments
- Transform the mundane into something magical/meaningful based on the genre
- Maintain the emotional truth of the original entries while crafting a compelling story
- Show character growth and development across the timeline
- Use the {style} writing style and {mood} mood throughout
- Make it feel like a complete journey with beginning, middle, and satisfying conclusion

Create a beautiful story that honors the user's real experiences while transforming them into something extraordinary."""),
])

STORY_LENGTH_HINTS = {
    "short": "Write a concise story of approximately 300-500 words",
    "medium": "Write a story of approximately 500-800 words",
    "long": "Write a detailed story of approximately 800-1200 words",
}


def image_generation_prompt(visual_prompt: str, mood: str, color_palette: str, cinematic_style: str) -> str:
    """prompt sent to the image model for one visual prompt"""
    return f"""Create a cinematic, symbolic image with subtle motion potential:

VISUAL: {visual_prompt}
MOOD: {mood}
COLORS: {color_palette}
STYLE: {cinematic_style}

Requirements:
- High visual quality, artistic composition
- Symbolic/metaphorical rather than literal
- Suitable for 2-3 second animation loop
- No text, people, or specific locations
- Cinematic lighting and depth
- 16:9 aspect ratio preferred

Style: Cinematic still, film photography, dramatic lighting, symbolic imagery"""
