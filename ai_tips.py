# ai_tips.py
import os
import re
import time
from functools import lru_cache
from typing import Any, Dict, List, Sequence, Tuple

from openai import OpenAI, OpenAIError

import settings
from co2_engine import ACTIVITY_LABELS
from emission_stats import activity_emission, activity_field
from utils import format_emissions

MAX_RECOMMENDATIONS = 5
RECENT_ACTIVITY_COUNT = 10

_NUMBERING = re.compile(r"^\s*(?:\d+[.)]|[-*•])\s*")


@lru_cache(maxsize=1)
def get_client() -> OpenAI:
    """OpenAI client, created on first use so a missing key never breaks imports."""
    return OpenAI(api_key=os.getenv("OPENAI_API_KEY"))


def ai_enabled() -> bool:
    return bool(os.getenv("OPENAI_API_KEY"))


def get_recommendations(stats: Dict[str, Any], activities: Sequence[Any]) -> List[str]:
    """Public entry point used by the app. Asks GPT for up to five tips;
    falls back to local rules if the key is missing, calls fail, or nothing usable comes back.
    """
    if not ai_enabled():
        print("⚠️ OPENAI_API_KEY not set. Using local recommendations.")
        return default_recommendations(stats)

    prompt = build_recommendation_prompt(stats, activities)
    tips = _recommendations_cached(prompt)
    if tips:
        return list(tips)
    return default_recommendations(stats)


@lru_cache(maxsize=128)
def _recommendations_cached(prompt: str) -> Tuple[str, ...]:
    """Cached GPT recommendations for one prompt. Empty tuple signals fallback."""
    response = _complete(
        [
            {"role": "system", "content": "You are a carbon footprint reduction advisor."},
            {"role": "user", "content": prompt},
        ],
        max_tokens=600,
    )
    return tuple(parse_recommendations(response))


def chat_with_ai(message: str, history: Sequence[Dict[str, str]], stats: Dict[str, Any]) -> str:
    """Answer a chat message about the user's footprint, with canned replies as fallback."""
    if not ai_enabled():
        print("⚠️ OPENAI_API_KEY not set. Using local chat responses.")
        return default_chat_response(message, stats)

    messages = [{"role": "system", "content": build_chat_context(stats)}]
    for turn in history:
        if turn.get("role") in ("user", "assistant") and turn.get("content"):
            messages.append({"role": turn["role"], "content": turn["content"]})
    messages.append({"role": "user", "content": message})

    reply = _complete(messages, max_tokens=1024)
    return reply or default_chat_response(message, stats)


def _complete(messages: List[Dict[str, str]], max_tokens: int) -> str:
    """One chat completion with retry and exponential backoff. Returns "" on failure."""
    retries = 3
    base_delay = 1.0
    for attempt in range(retries):
        try:
            response = get_client().chat.completions.create(
                model=settings.OPENAI_MODEL,
                messages=messages,
                max_tokens=max_tokens,
                temperature=0.7,
            )
            return (response.choices[0].message.content or "").strip()
        except OpenAIError as e:
            # Retry on OpenAI API errors (rate limit/quota/etc.), then give up
            if attempt == retries - 1:
                print(f"⚠️ GPT call failed (attempt {attempt+1}/{retries}): {e}. Giving up.")
                break
            sleep_s = base_delay * (2 ** attempt)
            print(f"⚠️ GPT call failed (attempt {attempt+1}/{retries}): {e}. Retrying in {sleep_s:.1f}s...")
            time.sleep(sleep_s)
        except Exception as e:
            print(f"⚠️ Unexpected GPT error: {e}")
            break
    return ""


def _category_lines(stats: Dict[str, Any]) -> str:
    by_category = stats.get("by_category", {})
    return "\n".join([
        f"- Transportation: {format_emissions(by_category.get('transport', 0))}",
        f"- Energy: {format_emissions(by_category.get('energy', 0))}",
        f"- Diet: {format_emissions(by_category.get('diet', 0))}",
    ])


def describe_activity(activity: Any) -> str:
    activity_type = activity_field(activity, "type") or ""
    label = ACTIVITY_LABELS.get(activity_type, activity_type.replace("_", " "))
    value = activity_field(activity, "value")
    unit = activity_field(activity, "unit") or ""
    return f"{label}: {value} {unit} ({format_emissions(activity_emission(activity))})"


def build_recommendation_prompt(stats: Dict[str, Any], activities: Sequence[Any]) -> str:
    recent = "\n".join(describe_activity(a) for a in list(activities)[:RECENT_ACTIVITY_COUNT])
    return (
        """
        Based on the user's emission data, provide 5 specific, actionable recommendations.

        User's Monthly Emissions: {monthly}
        {categories}

        Recent Activities:
        {recent}

        Provide exactly 5 personalized recommendations. Each should be specific, practical,
        and include an estimated CO₂ saving. Put each recommendation on its own line starting with a number.
        """.strip()
    ).format(
        monthly=format_emissions(stats.get("monthly", 0)),
        categories=_category_lines(stats),
        recent=recent or "(none logged yet)",
    )


def build_chat_context(stats: Dict[str, Any]) -> str:
    return (
        "You are EcoBot, a friendly carbon footprint advisor. Help users reduce their environmental impact.\n\n"
        f"User's Current Monthly Emissions: {format_emissions(stats.get('monthly', 0))}\n"
        f"{_category_lines(stats)}\n\n"
        "Be helpful, encouraging, and provide specific advice. Keep responses concise and actionable."
    )


def parse_recommendations(response: str) -> List[str]:
    """Split a numbered list into plain tips, dropping short or empty lines."""
    tips = []
    for line in (response or "").splitlines():
        cleaned = _NUMBERING.sub("", line).strip()
        if len(cleaned) > 20:
            tips.append(cleaned)
    return tips[:MAX_RECOMMENDATIONS]


def default_recommendations(stats: Dict[str, Any]) -> List[str]:
    """
    Rules-based recommendations that never fail.
    - Targeted tips for each category over its threshold (kg CO₂ this month)
    - General tips to fill the list
    """
    by_category = stats.get("by_category", {})
    tips = []

    if by_category.get("transport", 0) > 50:
        tips.append("Consider carpooling or using public transport for your daily commute. This could reduce your transport emissions by up to 50%.")
        tips.append("For short trips under 5 km, try cycling or walking instead of driving. You can save about 1 kg CO₂ per trip.")

    if by_category.get("energy", 0) > 100:
        tips.append("Switch to LED bulbs and turn off lights when leaving rooms. This simple change can reduce your electricity usage by 15%.")
        tips.append("Consider lowering your thermostat by 2°C. This can reduce heating emissions by up to 10%.")

    if by_category.get("diet", 0) > 30:
        tips.append("Try having 2-3 meat-free days per week. Replacing beef with plant-based meals can save up to 4.5 kg CO₂ per meal.")
        tips.append("Reduce food waste by planning meals ahead. About 8% of global emissions come from wasted food.")

    tips.append("Track your emissions daily to build awareness and identify opportunities for improvement.")
    tips.append("Set a monthly carbon budget goal and challenge yourself to stay under it.")

    return tips[:MAX_RECOMMENDATIONS]


def default_chat_response(message: str, stats: Dict[str, Any]) -> str:
    """Keyword-routed canned answer quoting the user's monthly figures."""
    text = (message or "").lower()
    by_category = stats.get("by_category", {})
    monthly = format_emissions(stats.get("monthly", 0))

    if any(word in text for word in ("transport", "car", "drive")):
        return (
            f"Based on your transport emissions of {format_emissions(by_category.get('transport', 0))} this month, here are some tips:\n\n"
            "• Use public transport when possible - buses emit about 60% less CO₂ per passenger-km than cars\n"
            "• Consider carpooling to share the emissions\n"
            "• For short distances, walking or cycling produces zero emissions\n"
            "• If buying a new car, consider an electric or hybrid vehicle"
        )

    if any(word in text for word in ("energy", "electricity", "power")):
        return (
            f"Your energy emissions are {format_emissions(by_category.get('energy', 0))} this month. Here's how to reduce them:\n\n"
            "• Switch to a renewable energy provider if available\n"
            "• Use LED bulbs - they use 75% less energy\n"
            "• Unplug devices when not in use\n"
            "• Set your thermostat 1-2°C lower in winter"
        )

    if any(word in text for word in ("food", "diet", "eat", "meat")):
        return (
            f"Your diet emissions are {format_emissions(by_category.get('diet', 0))} this month. Tips for lower-carbon eating:\n\n"
            "• Beef has the highest carbon footprint - try replacing it with chicken or plant-based alternatives\n"
            "• Eat seasonal and local produce when possible\n"
            "• Reduce food waste by planning meals\n"
            "• Try having one or two meat-free days per week"
        )

    if any(word in text for word in ("goal", "target", "reduce")):
        return (
            "Great question! The average person's carbon footprint is about 4-8 tonnes per year. Here's how to set meaningful goals:\n\n"
            "• Start by reducing 10% from your current emissions\n"
            "• Focus on your highest emission category first\n"
            "• Small daily changes add up over time\n"
            f"• Currently you're at {monthly} this month"
        )

    return (
        f"I'm here to help you reduce your carbon footprint! Your current monthly emissions are {monthly}.\n\n"
        "You can ask me about:\n"
        "• Transportation alternatives\n"
        "• Energy saving tips\n"
        "• Low-carbon diet choices\n"
        "• Setting reduction goals\n\n"
        "What would you like to know more about?"
    )
