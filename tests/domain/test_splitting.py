from lesson_voice.domain.splitting import is_speakable, progressive_chunks, split_sentences


def test_split_sentences_on_terminal_punctuation():
    assert split_sentences("Привет. Как дела? Отлично!") == ["Привет.", "Как дела?", "Отлично!"]


def test_split_sentences_keeps_closing_quote_with_sentence():
    assert split_sentences("Он сказал «Да.» Потом ушёл.") == ["Он сказал «Да.»", "Потом ушёл."]


def test_split_sentences_skips_known_abbreviations():
    text = "См. рис. 5 на стр. 10. Далее т.е. пример."
    assert split_sentences(text) == ["См. рис. 5 на стр. 10.", "Далее т.е. пример."]


def test_split_sentences_keeps_year_suffix_inside_sentence():
    text = "В тысяча девятьсот шестьдесят первом г. Гагарин полетел. В 1990-2000 гг. всё изменилось."
    assert split_sentences(text) == [
        "В тысяча девятьсот шестьдесят первом г. Гагарин полетел.",
        "В 1990-2000 гг. всё изменилось.",
    ]


def test_split_sentences_falls_back_to_line_breaks():
    text = "первая строка без точки\n\nвторая строка"
    assert split_sentences(text) == ["первая строка без точки", "вторая строка"]


def test_split_sentences_falls_back_to_commas():
    assert split_sentences("раз, два, три") == ["раз,", "два,", "три"]


def test_split_sentences_single_unit_is_trimmed_input():
    assert split_sentences("  просто фраза без знаков  ") == ["просто фраза без знаков"]


def test_split_sentences_blank_input():
    assert split_sentences("") == []
    assert split_sentences("   \n ") == []


def test_split_sentences_never_returns_empty_units():
    for text in ["...", "a. . b", "!?", "Да!!! Нет?!", "x,,y"]:
        units = split_sentences(text)
        assert units
        assert all(unit.strip() for unit in units)


def test_is_speakable_threshold():
    assert not is_speakable("а.")
    assert is_speakable("Да!")
    assert is_speakable("ок", min_chars=2)


def test_progressive_chunks_accumulate_units():
    assert progressive_chunks("Один. Два. Три.") == ["Один.", "Один. Два.", "Один. Два. Три."]
