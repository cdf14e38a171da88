"""Sample ground truth dataset for first-time users."""

SAMPLE_ENTRIES: list[dict[str, str]] = [
    {
        "question": "What is machine learning?",
        "ground_truth_chunk_id": "ML-101",
        "ground_truth_text": (
            "Machine learning is a subset of artificial intelligence that enables systems "
            "to learn and improve from experience without being explicitly programmed."
        ),
    },
    {
        "question": "What are the main types of machine learning?",
        "ground_truth_chunk_id": "ML-102",
        "ground_truth_text": (
            "The three main types of machine learning are supervised learning, "
            "unsupervised learning and reinforcement learning."
        ),
    },
    {
        "question": "What is neural network architecture?",
        "ground_truth_chunk_id": "NN-201",
        "ground_truth_text": (
            "A neural network architecture is the arrangement of neurons and layers: "
            "an input layer, one or more hidden layers, and an output layer."
        ),
    },
    {
        "question": "What is the purpose of the activation function in neural networks?",
        "ground_truth_chunk_id": "NN-202",
        "ground_truth_text": (
            "Activation functions introduce non-linearity, allowing the network to learn "
            "complex patterns. Common choices are ReLU, Sigmoid and Tanh."
        ),
    },
    {
        "question": "What is data preprocessing and why is it important?",
        "ground_truth_chunk_id": "DATA-301",
        "ground_truth_text": (
            "Data preprocessing cleans and transforms raw data before training: handling "
            "missing values, removing duplicates, normalizing and encoding categories."
        ),
    },
    {
        "question": "What is overfitting in machine learning?",
        "ground_truth_chunk_id": "ML-103",
        "ground_truth_text": (
            "Overfitting occurs when a model learns the training data too well, including "
            "its noise, and performs poorly on new, unseen data."
        ),
    },
]


def sample_dataset() -> list[dict[str, str]]:
    """Get a copy of the sample entries, ready to be written as a JSON import file."""
    return [dict(entry) for entry in SAMPLE_ENTRIES]
