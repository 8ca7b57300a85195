"""Prompt templates — one builder per task.

Every builder returns an OpenAI-style ``messages`` list (or, for
:func:`news_analysis_prompt`, the user prompt string).  Templates that ask
for JSON spell out the exact shape :mod:`gateway.parser` expects.
"""

from __future__ import annotations

from collections.abc import Sequence

from gateway.models import ChatMessage, ViewpointType

_AUTHOR_SYSTEM_PROMPT = """\
You are an expert at analyzing articles and finding information about authors. \
Given an article, identify the author and provide detailed background information.

Format the response as JSON with this structure:
{
  "name": "Author's full name",
  "background": "2-3 sentences about author's career, education, expertise",
  "potentialBiases": ["List of potential biases or conflicts of interest"],
  "recentArticles": [
    {
      "title": "Article title",
      "url": "Article URL",
      "date": "Publication date if available"
    }
  ],
  "citations": [
    {
      "url": "Source URL",
      "title": "Source title"
    }
  ]
}"""

_VIEWPOINT_SYSTEM_PROMPT = """\
You are an expert at analyzing topics from a {perspective} perspective.
Your task is to provide a balanced and factual analysis from this viewpoint. \
Focus on really understanding the root cause of the topic and provide a detailed analysis.

Format your response in exactly this JSON structure:
{{
  "summary": "A concise overview of the {perspective} perspective",
  "arguments": [
    {{
      "summary": "First main point",
      "detail": "Detailed explanation of the first point [1]"
    }},
    {{
      "summary": "Second main point",
      "detail": "Detailed explanation of the second point [2]"
    }}
  ],
  "citations": [
    {{
      "title": "Source Title",
      "url": "https://source-url.com",
      "snippet": "Optional relevant quote or context from the source"
    }}
  ]
}}

Guidelines:
1. Be objective and factual
2. Avoid extreme or inflammatory language
3. Focus on mainstream {perspective} viewpoints
4. Support arguments with reasoning
5. Keep the summary under 100 words
6. Provide at least 3-4 main arguments but where appropriate provide more
7. The arguments you provide should be extremely detailed, nuanced and thoughtful
8. For each detailed argument, provide verifiable examples, data, quotes, etc.
9. End each argument's detail with the 1-based index of its source in brackets, e.g. [1]
10. IMPORTANT: Ensure your response is valid JSON
11. For each argument, try to provide at least one credible source
12. Sources should be real and verifiable"""

_NEWS_ANALYSIS_PROMPT = """\
Analyze this article and provide different perspectives on the topic. Focus on \
identifying and explaining various viewpoints, potential biases, and alternative \
interpretations. Here's the article content:

{article_content}"""

_FORMAT_SYSTEM_PROMPT = """\
You are an expert at formatting articles for readability. Given an article's content:
1. Format it with proper markdown
2. Add appropriate headers for sections
3. Ensure paragraphs are properly spaced
4. Keep all factual content intact
5. Do not add or remove information
6. Use consistent header levels
7. Add line breaks between paragraphs for readability"""

_QUERY_SYSTEM_PROMPT = (
    "You are a query optimization expert who helps formulate detailed and precise "
    "queries based on user questions and context."
)

_QUERY_PROMPT = """\
Given the following context about an article and a user's question, generate 4 detailed queries.

Article Title: "{title}"

Article Content:
{content}

Chat History:
{history}

Current Question: "{question}"

Please generate:
1. A detailed, consolidated query that precisely captures what the user is asking \
about the topic (this will be used to search for a comprehensive answer)
2. Three potential follow-up queries that the user might have after getting an \
answer to their current question

Format your response exactly as follows:
MAIN QUERY:
[Your consolidated query here]

FOLLOW UP QUERIES:
1. [First follow-up query]
2. [Second follow-up query]
3. [Third follow-up query]"""

_CHAT_SYSTEM_PROMPT = """\
You are a helpful AI assistant analyzing the article titled "{title}".
Use the following article content as context for answering questions but if the \
answer is not in the article, search other sources to provide a nuanced perspective \
on the question:

{content}

When providing answers:
1. Be concise and accurate
2. Use information directly from the article when possible otherwise search other \
sources to provide a nuanced perspective on the question
3. If you need to make assumptions or provide additional context, clearly state so
4. Format your response with proper spacing and structure:
   - Use double line breaks between paragraphs
   - For lists or bullet points, use proper markdown formatting:
     * Use numbers (1., 2., etc.) for sequential items
     * Use hyphens (-) or asterisks (*) for bullet points
     * Add a line break before and after lists
   - Keep sentences properly spaced
   - Use appropriate formatting for emphasis when needed
5. If you cite sources, end the answer with a line "SOURCES:" followed by one \
"Title - URL" line per source

Previous conversation context:
{history}"""


def author_messages(article_content: str) -> list[dict]:
    return [
        {"role": "system", "content": _AUTHOR_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": f"Analyze this article and provide information about its author:\n\n{article_content}",
        },
    ]


def viewpoint_messages(prompt: str, perspective: ViewpointType) -> list[dict]:
    return [
        {"role": "system", "content": _VIEWPOINT_SYSTEM_PROMPT.format(perspective=perspective)},
        {"role": "user", "content": prompt},
    ]


def news_analysis_prompt(article_content: str) -> str:
    return _NEWS_ANALYSIS_PROMPT.format(article_content=article_content)


def format_messages(content: str) -> list[dict]:
    return [
        {"role": "system", "content": _FORMAT_SYSTEM_PROMPT},
        {"role": "user", "content": content},
    ]


def format_history(messages: Sequence[ChatMessage]) -> str:
    """Render prior turns as ``role: content`` lines.

    The last message is the question being asked and is excluded.
    """
    return "\n".join(f"{m.role}: {m.content}" for m in messages[:-1])


def query_refinement_messages(
    title: str,
    content: str,
    messages: Sequence[ChatMessage],
    question: str,
) -> list[dict]:
    prompt = _QUERY_PROMPT.format(
        title=title,
        content=content,
        history=format_history(messages),
        question=question,
    )
    return [
        {"role": "system", "content": _QUERY_SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]


def chat_messages(
    title: str,
    content: str,
    messages: Sequence[ChatMessage],
    main_query: str,
) -> list[dict]:
    system = _CHAT_SYSTEM_PROMPT.format(
        title=title,
        content=content,
        history=format_history(messages),
    )
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": main_query},
    ]
