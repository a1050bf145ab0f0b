"""
Compounding of accepted collocations, followed by stemming.

Matched spans of adjacent tokens are replaced by one token joined with a
concatenator (a space by default) so that phrases such as "fake news"
become a single feature. Stemming runs afterwards on simple tokens only,
which keeps phrase features human-readable.
"""

from __future__ import annotations

import logging
from typing import FrozenSet, Iterable, List, Optional, Sequence, Set, Tuple, Union

from tweetbow.features.collocations import Collocation
from tweetbow.features.preprocessing import PAD, TokenizedCorpus, stem_tokens


logger = logging.getLogger(__name__)

PhraseLike = Union[Collocation, Sequence[str], str]


def _as_phrase_set(phrases: Iterable[PhraseLike]) -> Set[Tuple[str, ...]]:
    out: Set[Tuple[str, ...]] = set()
    for p in phrases:
        if isinstance(p, Collocation):
            gram = p.tokens
        elif isinstance(p, str):
            gram = tuple(p.split())
        else:
            gram = tuple(p)
        if len(gram) >= 2:
            out.add(gram)
    return out


def compound_strings(
    phrases: Iterable[PhraseLike], concatenator: str = " "
) -> FrozenSet[str]:
    """Return the compound tokens that joining ``phrases`` produces."""
    return frozenset(concatenator.join(p) for p in _as_phrase_set(phrases))


def compound_sequence(
    sequence: Sequence[str],
    phrases: Set[Tuple[str, ...]],
    concatenator: str = " ",
) -> List[str]:
    """
    Replace phrase spans in one token sequence with compound tokens.

    The scan runs left to right and tries the longest phrase first at each
    position. Pads and compound tokens made from ``phrases`` never take part
    in a match, so a second pass with the same phrases changes nothing.
    Other tokens may contain ``concatenator`` (e.g. "#fake_news" with "_")
    and are matched like any word.
    """
    if not phrases:
        return list(sequence)

    joined = {concatenator.join(p) for p in phrases}

    lengths = sorted({len(p) for p in phrases}, reverse=True)
    out: List[str] = []
    i = 0
    n = len(sequence)
    while i < n:
        token = sequence[i]
        matched = False
        if token != PAD and token not in joined:
            for length in lengths:
                if i + length > n:
                    continue
                window = tuple(sequence[i : i + length])
                if any(t == PAD or t in joined for t in window):
                    continue
                if window in phrases:
                    out.append(concatenator.join(window))
                    i += length
                    matched = True
                    break
        if not matched:
            out.append(token)
            i += 1
    return out


def compound_tokens(
    sequences: Iterable[Sequence[str]],
    collocations: Iterable[PhraseLike],
    concatenator: str = " ",
) -> List[List[str]]:
    """
    Compound every sequence against the same phrase set.

    Parameters
    ----------
    sequences : Iterable[Sequence[str]]
        Token sequences; not modified.
    collocations : Iterable[PhraseLike]
        Accepted phrases, given as Collocation objects, token tuples or
        space-separated strings.
    concatenator : str
        Separator placed between the words of a compound token.

    Returns
    -------
    List[List[str]]
        New token sequences.
    """
    if not concatenator:
        raise ValueError("concatenator must be a non-empty string")
    phrases = _as_phrase_set(collocations)
    return [compound_sequence(seq, phrases, concatenator) for seq in sequences]


def compound_corpus(
    tokenized: TokenizedCorpus,
    collocations: Iterable[PhraseLike],
    concatenator: str = " ",
) -> TokenizedCorpus:
    """Return a new TokenizedCorpus with phrases compounded."""
    return tokenized.with_tokens(
        compound_tokens(tokenized.tokens, collocations, concatenator)
    )


def stem_corpus(
    tokenized: TokenizedCorpus,
    algorithm: str = "snowball",
    language: str = "english",
    stem_compounds: bool = False,
    concatenator: str = " ",
    compounds: Optional[FrozenSet[str]] = None,
) -> TokenizedCorpus:
    """Return a new TokenizedCorpus with every simple token stemmed."""
    return tokenized.with_tokens(
        [
            stem_tokens(
                seq,
                algorithm=algorithm,
                language=language,
                stem_compounds=stem_compounds,
                concatenator=concatenator,
                compounds=compounds,
            )
            for seq in tokenized.tokens
        ]
    )


def compound_and_stem(
    tokenized: TokenizedCorpus,
    collocations: Iterable[PhraseLike],
    concatenator: str = " ",
    stem: bool = True,
    algorithm: str = "snowball",
    language: str = "english",
    stem_compounds: bool = False,
) -> TokenizedCorpus:
    """
    Compound accepted collocations, then stem what is left.

    Stemming happens after compounding so that phrase tokens keep their
    surface words. Only the tokens compounding produced count as
    compounds; a simple token that happens to contain ``concatenator`` is
    stemmed like any other.
    """
    collocations = list(collocations)
    compounded = compound_corpus(tokenized, collocations, concatenator)
    compounds = compound_strings(collocations, concatenator)
    n_compounds = sum(1 for seq in compounded.tokens for t in seq if t in compounds)
    logger.info(
        "Compounded %d phrase occurrences from %d accepted collocations.",
        n_compounds,
        len(collocations),
    )
    if not stem:
        return compounded
    return stem_corpus(
        compounded,
        algorithm=algorithm,
        language=language,
        stem_compounds=stem_compounds,
        concatenator=concatenator,
        compounds=compounds,
    )
