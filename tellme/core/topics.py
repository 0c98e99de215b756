"""Fixed topic registry: display names and Wikipedia search terms."""

from __future__ import annotations

from enum import Enum


class Topic(str, Enum):
    """Subject-matter category attached to every content unit.

    The value is the stable identifier persisted in the database.
    """

    FACTS = "facts"
    HISTORY = "history"
    PHILOSOPHY = "philosophy"
    MYSTERIES = "mysteries"
    CONSPIRACIES = "conspiracies"
    SCIENCE = "science"
    TRADITIONS = "traditions"
    CRIMES = "crimes"
    CIVILIZATIONS = "civilizations"
    PSYCHOLOGY = "psychology"

    @classmethod
    def all(cls) -> tuple["Topic", ...]:
        """All topics ordered by their stable identifier."""
        return tuple(sorted(cls, key=lambda t: t.value))

    @property
    def display_name(self) -> str:
        return DISPLAY_NAMES[self]

    @property
    def search_queries(self) -> tuple[str, ...]:
        return SEARCH_QUERIES[self]


DISPLAY_NAMES: dict[Topic, str] = {
    Topic.FACTS: "Interesting Facts",
    Topic.HISTORY: "History",
    Topic.PHILOSOPHY: "Philosophy",
    Topic.MYSTERIES: "World Mysteries",
    Topic.CONSPIRACIES: "Conspiracies",
    Topic.SCIENCE: "Science",
    Topic.TRADITIONS: "Cultural Traditions",
    Topic.CRIMES: "Unsolved Crimes",
    Topic.CIVILIZATIONS: "Ancient Civilizations",
    Topic.PSYCHOLOGY: "Psychology",
}

SEARCH_QUERIES: dict[Topic, tuple[str, ...]] = {
    Topic.FACTS: (
        "World record", "Guinness World Records", "Strange phenomena",
        "Unusual animals", "Natural wonders", "Scientific facts",
        "Human body facts", "Space facts", "Ocean mysteries",
        "Animal behavior", "Plant adaptations", "Weather phenomena",
    ),
    Topic.HISTORY: (
        "World War", "Ancient Rome", "Medieval period", "Renaissance",
        "Industrial Revolution", "Cold War", "Viking Age", "Mongol Empire",
        "Byzantine Empire", "Ottoman Empire", "British Empire", "Spanish Empire",
        "French Revolution", "American Civil War", "Russian Revolution",
    ),
    Topic.PHILOSOPHY: (
        "Socrates", "Plato", "Aristotle", "Descartes", "Kant", "Nietzsche",
        "Existentialism", "Stoicism", "Buddhism philosophy", "Confucianism",
        "Ethics", "Metaphysics", "Epistemology", "Logic", "Phenomenology",
    ),
    Topic.MYSTERIES: (
        "Bermuda Triangle", "Stonehenge", "Easter Island", "Nazca Lines",
        "Crop circles", "Ball lightning", "Spontaneous human combustion",
        "Voynich Manuscript", "Antikythera mechanism", "Shroud of Turin",
        "Oak Island", "Bigfoot", "UFO sightings", "Ghost phenomena",
    ),
    Topic.CONSPIRACIES: (
        "JFK assassination", "Moon landing conspiracy", "9/11 conspiracy",
        "Area 51", "Illuminati", "New World Order", "Chemtrails",
        "HAARP", "MKUltra", "Project Blue Book", "Roswell incident",
        "Philadelphia Experiment", "Flat Earth", "QAnon",
    ),
    Topic.SCIENCE: (
        "DNA discovery", "Theory of relativity", "Quantum mechanics", "Evolution",
        "Penicillin", "Vaccines", "Atomic theory", "Periodic table",
        "Electromagnetic radiation", "Black holes", "Big Bang theory",
        "Photosynthesis", "Genetics", "Stem cells", "CRISPR", "Antibiotics",
    ),
    Topic.TRADITIONS: (
        "Japanese tea ceremony", "Diwali", "Day of the Dead", "Carnival",
        "Chinese New Year", "Oktoberfest", "Holi festival", "Thanksgiving",
        "Aboriginal Dreamtime", "Native American traditions", "Celtic festivals",
        "African tribal customs", "Hindu traditions", "Buddhist ceremonies",
    ),
    Topic.CRIMES: (
        "Jack the Ripper", "Zodiac Killer", "Black Dahlia", "D.B. Cooper",
        "Lindbergh kidnapping", "Alcatraz escape", "Great Train Robbery",
        "Art theft", "Ponzi scheme", "Watergate scandal", "Enron scandal",
        "Al Capone", "Pablo Escobar", "Serial killers",
    ),
    Topic.CIVILIZATIONS: (
        "Ancient Egypt", "Maya civilization", "Aztec Empire", "Inca Empire",
        "Mesopotamia", "Indus Valley Civilization", "Ancient Greece",
        "Roman Empire", "Persian Empire", "Chinese dynasties", "Viking civilization",
        "Angkor Wat", "Machu Picchu", "Petra", "Pompeii", "Troy",
    ),
    Topic.PSYCHOLOGY: (
        "Cognitive bias", "Memory formation", "Dreams", "Consciousness",
        "Personality psychology", "Social psychology", "Behavioral psychology",
        "Pavlov experiments", "Stanford prison experiment", "Milgram experiment",
        "Placebo effect", "Optical illusions", "Phobias", "Depression", "Autism",
    ),
}


def parse_topic(value: str) -> Topic:
    """Decode a stored topic identifier.

    Accepts the identifier with surrounding whitespace or in any case.

    Raises:
        ValueError: If the value names no known topic.
    """
    if not isinstance(value, str):
        raise ValueError(f"Topic identifier must be text, got {type(value).__name__}")
    return Topic(value.strip().lower())
