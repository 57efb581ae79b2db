PROMPT_CARD_DEFINITION = """
You are writing a vocabulary flashcard for an English learner.
The word is: "{word}"

Answer using exactly the labels below, each at the start of its own line,
in this order. Do not add any other headings, numbering or markdown.
If a field does not apply, write N/A.

POS: part of speech (noun, verb, adjective, ...)
IPA: pronunciation in IPA, between slashes
DEFINITION: one or two clear sentences
TRANSLATION: a short translation into {translation_language}
WORD FAMILY: related forms, comma separated, each followed by its part of speech in parentheses, e.g. serendipitous (adj)
CONTEXT: one natural example sentence using the word
SYNONYMS: up to four synonyms, comma separated
ANTONYMS: up to four antonyms, comma separated
DIFFICULTY: one of Basic, Intermediate, Advanced, Expert
ETYMOLOGY: one sentence on the origin of the word
USAGE NOTES: one sentence on register, collocations or common mistakes
"""

PROMPT_RANDOM_WORD = """
Suggest one sophisticated but useful English vocabulary word for a learner.
Do not suggest any of these words: {exclude}
Reply with the single word only, no punctuation or explanation.
"""

PROMPT_RANDOM_WORDS = """
Suggest {count} different sophisticated but useful English vocabulary words for a learner.
Do not suggest any of these words: {exclude}
Reply with the words only, one per line, no numbering or explanation.
"""

PROMPT_SHORT_DEFINITION = """
Give a one-line dictionary definition of the English word "{word}".
Format: (part of speech) definition
"""

PROMPT_USAGE_EXAMPLE = """
Write one new, natural example sentence that uses the English word "{word}".
Reply with the sentence only.
"""
