from ekko.transcript import LiveTranscript, TranscriptSegment


def test_interim_text_follows_final_text():
    transcript = LiveTranscript()

    assert transcript.feed(TranscriptSegment("hello", is_final=False)) == "hello"
    assert transcript.feed(TranscriptSegment("hello there")) == "hello there"
    assert transcript.feed(TranscriptSegment("how are", is_final=False)) == "hello there how are"
    assert transcript.feed(TranscriptSegment("how are you")) == "hello there how are you"
    assert transcript.final == "hello there how are you"


def test_blank_final_clears_interim_only():
    transcript = LiveTranscript()
    transcript.feed(TranscriptSegment("kept"))
    transcript.feed(TranscriptSegment("maybe", is_final=False))

    assert transcript.feed(TranscriptSegment("  ")) == "kept"


def test_clear():
    transcript = LiveTranscript()
    transcript.feed(TranscriptSegment("something"))
    transcript.clear()
    assert transcript.display == ""
