"""
Command-line question answering over a single PDF.

This script:
1. Extracts the PDF's text page by page
2. Splits it into overlapping chunks
3. Embeds the chunks using the HuggingFace API (progress is logged)
4. Answers each question from the most relevant chunks using Groq

Usage:
    python ask_document.py manual.pdf --question "How do I reset the device?"
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from services.embedding_model import EmbeddingModel
from services.llm_client import LLMClient
from services.document_loader import ParseError
from services.retrieval_engine import RetrievalEngine
from services.rag_pipeline import RAGPipeline
from config import TOP_K

logger = logging.getLogger(__name__)


def log_progress(message: str, percent: int) -> None:
    logger.info(f"[{percent:3d}%] {message}")


async def run(pdf_path: Path, questions, top_k: int) -> int:
    """Index the PDF and answer every question; returns a process exit code."""
    embedding_model = EmbeddingModel()
    pipeline = RAGPipeline(
        embedding_model=embedding_model,
        llm_client=LLMClient(),
        retrieval_engine=RetrievalEngine(top_k=top_k)
    )

    try:
        return await _answer_questions(pipeline, pdf_path, questions)
    finally:
        await embedding_model.aclose()


async def _answer_questions(pipeline: RAGPipeline, pdf_path: Path, questions) -> int:
    logger.info("Warming up embedding model...")
    await pipeline.embedding_model.warmup()

    try:
        index = await pipeline.process_document(pdf_path.read_bytes(), log_progress)
    except ParseError as e:
        logger.error(f"Could not read {pdf_path.name}: {e}")
        return 1

    logger.info(f"✓ Indexed {len(index)} chunks from {pdf_path.name}")
    if not index:
        logger.error("No text could be indexed from this document")
        return 1

    for question in questions:
        answer, sources = await pipeline.answer_with_sources(question, index)
        print(f"\nQ: {question}\nA: {answer}")
        for item in sources:
            print(f"   - page {item.chunk.page_number} ({item.chunk.chunk_id}, score {item.relevance_score:.3f})")

    return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Ask questions about a PDF using retrieval-augmented generation"
    )
    parser.add_argument("pdf", type=Path, help="Path to the PDF file")
    parser.add_argument(
        "--question", "-q",
        action="append",
        required=True,
        help="Question to ask (repeat for several questions)"
    )
    parser.add_argument(
        "--top-k",
        type=int,
        default=TOP_K,
        help=f"Number of chunks used as context (default: {TOP_K})"
    )
    args = parser.parse_args()

    if not args.pdf.is_file():
        parser.error(f"File not found: {args.pdf}")

    try:
        sys.exit(asyncio.run(run(args.pdf, args.question, args.top_k)))
    except KeyboardInterrupt:
        logger.warning("\nInterrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"\nFailed: {str(e)}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
