import random
from typing import Optional, Sequence

# Sentences that reference one trait each
TRAIT_PHRASES = [
    lambda t: f"I've always admired how {t} you are.",
    lambda t: f"Your {t} nature makes everyone around you feel better.",
    lambda t: f"You're one of the most {t} people I know.",
    lambda t: f"Thank you for being so {t} — it really matters.",
    lambda t: f"The way you're {t} has always meant a lot to me.",
    lambda t: f"Here's to another year of you being your {t} self.",
    lambda t: f"You bring so much {t} into the world.",
    lambda t: f"I'm lucky to have someone as {t} as you in my life.",
]

# Closing lines (no trait)
CLOSINGS = [
    "Wishing you a year full of joy and everything you love.",
    "Hope your day is as amazing as you are.",
    "Cheers to you — today and every day.",
    "Sending you so much love on your special day.",
]

FALLBACK_PHRASE = "You're so {trait} — and that's something to celebrate."
NO_TRAITS_MESSAGE = (
    "Happy {age}th birthday, {name}! Wishing you a year filled with joy, "
    "laughter, and everything that makes you smile."
)


def compose_message(
    name: str,
    age,
    traits: Sequence[str],
    personal_message: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> str:
    """Build the card body text.

    A non-blank personal message wins and is returned trimmed. Otherwise each
    trait gets its own sentence from a shuffled template pool (traits past the
    pool size fall back to a generic sentence), followed by a blank line and a
    random closing. Without traits a fixed greeting is returned.

    Args:
        name: Recipient name
        age: Recipient age, substituted as given
        traits: Lowercased, trimmed, non-empty traits in input order
        personal_message: Optional text overriding the composed message
        rng: Random source; a freshly seeded one when omitted
    """
    if personal_message and personal_message.strip():
        return personal_message.strip()

    if not traits:
        return NO_TRAITS_MESSAGE.format(age=age, name=name)

    if rng is None:
        rng = random.Random()
    phrases = list(TRAIT_PHRASES)
    rng.shuffle(phrases)

    lines = []
    for i, trait in enumerate(traits):
        if i < len(phrases):
            lines.append(phrases[i](trait))
        else:
            lines.append(FALLBACK_PHRASE.format(trait=trait))
    lines.append("")
    lines.append(rng.choice(CLOSINGS))
    return "\n".join(lines)
