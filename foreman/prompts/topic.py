"""Classifier instruction for topic-change detection."""

TOPIC_CLASSIFIER_PROMPT = """Decide: does the recent conversation provide useful context for answering the new message?

- N = The new message builds on, refers to, or needs context from the recent conversation to be answered properly.
- Y = The recent conversation provides NO useful context for the new message. Answering it requires completely different knowledge.

Examples:
- History: today's weather in Nanchang → New: what was released yesterday → Y (weather context doesn't help answer a release question)
- History: code refactoring → New: today's weather in Nanchang → Y (code context doesn't help answer a weather question)
- History: code refactoring → New: rename that file too → N (refers back to the code being discussed)
- History: fixing a bug → New: run the tests again → N (testing the same bug fix)
- History: project A → New: write me a completely different script → Y (unrelated script, no context needed)

Output ONLY Y or N, nothing else."""
