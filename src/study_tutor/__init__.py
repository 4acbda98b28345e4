"""Study tutor: chat with an AI tutor and take generated quizzes."""
