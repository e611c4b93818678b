"""
Knowledge Scout Backend - AI Service
====================================

What:  Document summaries and study questions.
How:   Builds a prompt from the extracted document text and delegates to
       the configured LLMService. Summaries are stored on the document.
"""

import logging
import re
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from scout.models import User
from scout.schemas.ai import QuestionsResponse, SummaryResponse
from scout.services.document_service import DocumentService
from scout.services.llm_base import LLMService

logger = logging.getLogger(__name__)

CONTEXT_CHARS = 12_000
MAX_QUESTIONS = 10

SUMMARY_PROMPT = """Summarize the following document in a few concise paragraphs.
Focus on the main ideas, key facts and conclusions.

Document:
\"\"\"
{document}
\"\"\""""

QUESTIONS_PROMPT = """Write {count} questions a reader should be able to answer after
reading the following document. Return one question per line, with no numbering
and no other text.

Document:
\"\"\"
{document}
\"\"\""""

# "1. ", "2) ", "- ", "* " prefixes models add despite instructions
_LIST_PREFIX = re.compile(r"^\s*(?:\d+[.)]|[-*•])\s*")


def parse_questions(text: str, limit: int = MAX_QUESTIONS) -> List[str]:
    questions = []
    for line in text.splitlines():
        line = _LIST_PREFIX.sub("", line).strip()
        if line:
            questions.append(line)
    return questions[:limit]


class AIService:

    def __init__(self, documents: DocumentService, llm: LLMService):
        self.documents = documents
        self.llm = llm

    async def generate_summary(self, db: AsyncSession, user: User, document_id: str) -> SummaryResponse:
        document, text = await self.documents.require_text(db, user, document_id)
        summary = await self.llm.generate(SUMMARY_PROMPT.format(document=text[:CONTEXT_CHARS]))

        document.summary = summary
        await db.commit()
        logger.info("Summary generated for document %s (%d chars)", document.id, len(summary))
        return SummaryResponse(document_id=document.id, summary=summary)

    async def generate_questions(self, db: AsyncSession, user: User, document_id: str) -> QuestionsResponse:
        document, text = await self.documents.require_text(db, user, document_id)
        raw = await self.llm.generate(
            QUESTIONS_PROMPT.format(count=MAX_QUESTIONS, document=text[:CONTEXT_CHARS])
        )
        questions = parse_questions(raw)
        logger.info("Generated %d questions for document %s", len(questions), document.id)
        return QuestionsResponse(document_id=document.id, questions=questions)
