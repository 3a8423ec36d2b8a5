"""
Gemini AI service for lecture topic extraction and question generation
"""
import google.generativeai as genai
from quizcraft.config import settings
import json
import logging
from typing import List, Dict, Any

logger = logging.getLogger(__name__)

# Configure Gemini API
genai.configure(api_key=settings.GEMINI_API_KEY)

# Prompt size limits (characters of lecture text)
TOPIC_CONTEXT_CHARS = 4000
QUESTION_CONTEXT_CHARS = 6000


class GenerationError(Exception):
    """Generator response could not be used"""


class GeminiService:
    """
    Content generator backed by Gemini

    Public methods never raise: when the model call or parsing fails they
    return the fixed stub topics/questions so quiz creation still succeeds.
    """

    def __init__(self):
        self.model = genai.GenerativeModel(settings.GEMINI_MODEL)

    def _clean_json(self, response_text: str) -> Any:
        """Strip markdown fences and parse the model's JSON"""
        cleaned = response_text.strip()

        if cleaned.startswith("```json"):
            cleaned = cleaned[7:-3].strip()
        elif cleaned.startswith("```"):
            cleaned = cleaned[3:-3].strip()

        return json.loads(cleaned)

    def _generate_json(self, prompt: str) -> Any:
        response = self.model.generate_content(prompt)
        try:
            return self._clean_json(response.text)
        except (json.JSONDecodeError, ValueError) as e:
            logger.error(f"Failed to parse Gemini JSON: {str(e)}")
            logger.error(f"Response text: {response.text[:500]}")
            raise GenerationError(str(e)) from e

    def extract_topics(self, text: str) -> List[Dict[str, Any]]:
        """
        Extract main lecture topics with importance weights

        Args:
            text: Extracted lecture text

        Returns:
            List of {"name", "weight", "description"} dictionaries
        """
        if not text or not text.strip():
            return self.get_fallback_topics()

        prompt = f"""
Analyze the following lecture content and extract the main topics and concepts.
Return a JSON array of topics with their importance weights (1-10).

Content:
{text[:TOPIC_CONTEXT_CHARS]}

Return ONLY valid JSON in this format (no markdown, no preamble):
[
  {{"name": "Topic Name", "weight": 8, "description": "Brief description"}}
]
"""
        try:
            topics = self._generate_json(prompt)
            if not isinstance(topics, list) or not topics:
                raise GenerationError("Topic response is not a non-empty list")
            return topics
        except Exception as e:
            logger.warning(f"Topic extraction failed, using fallback topics: {str(e)}")
            return self.get_fallback_topics()

    def generate_questions(
        self,
        text: str,
        topics: List[Dict[str, Any]],
        num_questions: int = 10
    ) -> List[Dict[str, Any]]:
        """
        Generate quiz questions from lecture content

        Args:
            text: Extracted lecture text
            topics: Topic dictionaries to focus on
            num_questions: Number of questions requested

        Returns:
            Raw question dictionaries (validated later by the question validator)
        """
        if not text or not text.strip():
            return self.get_fallback_questions(num_questions)

        prompt = self._create_question_prompt(text, topics, num_questions)

        try:
            questions = self._generate_json(prompt)
            if not isinstance(questions, list) or not questions:
                raise GenerationError("Question response is not a non-empty list")

            if len(questions) != num_questions:
                logger.warning(f"Expected {num_questions} questions, got {len(questions)}")

            return questions
        except Exception as e:
            logger.warning(f"Question generation failed, using fallback questions: {str(e)}")
            return self.get_fallback_questions(num_questions)

    def _create_question_prompt(
        self,
        text: str,
        topics: List[Dict[str, Any]],
        num_questions: int
    ) -> str:
        """Create structured prompt for question generation"""

        topic_names = ", ".join(str(t.get("name")) for t in topics if isinstance(t, dict))

        return f"""
Generate {num_questions} quiz questions based on the following lecture content.
Create a mix of question types: multiple-choice, true-false, and short-answer.
Focus on the key concepts and ensure questions test understanding, not just memorization.

Lecture Content:
{text[:QUESTION_CONTEXT_CHARS]}

Topics to focus on: {topic_names}

Return ONLY valid JSON in this exact format (no markdown, no preamble):
[
  {{
    "questionId": "q1",
    "text": "Question text here?",
    "type": "multiple-choice",
    "options": [
      {{"text": "Option A", "isCorrect": false}},
      {{"text": "Option B", "isCorrect": true}},
      {{"text": "Option C", "isCorrect": false}},
      {{"text": "Option D", "isCorrect": false}}
    ],
    "correctAnswer": "Option B",
    "topic": "Topic Name",
    "difficulty": "medium",
    "explanation": "Explanation of why this answer is correct",
    "points": 10
  }}
]

Question types:
- multiple-choice: 4 options, one correct
- true-false: 2 options (True/False)
- short-answer: no options, correctAnswer is the expected answer

Difficulty levels: easy, medium, hard
Points: 5 for easy, 10 for medium, 15 for hard
"""

    def get_fallback_topics(self) -> List[Dict[str, Any]]:
        """Stub topics used when the model is unavailable"""
        return [
            {"name": "General Concepts", "weight": 5, "description": "Main concepts from the lecture"}
        ]

    def get_fallback_questions(self, num_questions: int = 10) -> List[Dict[str, Any]]:
        """Stub questions used when the model is unavailable"""
        questions = []

        for i in range(1, num_questions + 1):
            questions.append({
                "questionId": f"q{i}",
                "text": f"This is a sample question {i}. What is the main concept discussed in the lecture?",
                "type": "multiple-choice",
                "options": [
                    {"text": "Option A", "isCorrect": False},
                    {"text": "Option B", "isCorrect": True},
                    {"text": "Option C", "isCorrect": False},
                    {"text": "Option D", "isCorrect": False}
                ],
                "correctAnswer": "Option B",
                "topic": "General Concepts",
                "difficulty": "medium",
                "explanation": "This is a sample explanation for the correct answer.",
                "points": 10
            })

        return questions


# Global instance
gemini_service = GeminiService()
