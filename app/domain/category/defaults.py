# app/domain/category/defaults.py
from __future__ import annotations

from typing import Dict, List

DEFAULT_CATEGORIES: Dict[str, List[str]] = {
    "Animals": ["Elephant", "Tiger", "Penguin", "Dolphin", "Koala", "Giraffe", "Kangaroo", "Octopus"],
    "Countries": ["Japan", "Brazil", "Australia", "France", "Egypt", "Canada", "Mexico", "India"],
    "Foods": ["Pizza", "Sushi", "Pasta", "Burger", "Taco", "Curry", "Pancake", "Chocolate"],
    "Sports": ["Soccer", "Basketball", "Tennis", "Swimming", "Volleyball", "Golf", "Cricket", "Surfing"],
    "Movies": ["Avatar", "Titanic", "Star Wars", "Inception", "Frozen", "Avengers", "Matrix", "Jurassic Park"],
    "Professions": ["Doctor", "Teacher", "Chef", "Pilot", "Artist", "Engineer", "Firefighter", "Scientist"],
    "Musical Instruments": [
        "Piano", "Guitar", "Violin", "Drums", "Trumpet", "Flute", "Saxophone", "Cello",
        "Harp", "Clarinet", "Ukulele", "Accordion",
    ],
    "Around the House": [
        "Sofa", "Toaster", "Bathtub", "Staircase", "Fridge", "Lamp", "Curtains", "Doormat",
        "Pillow", "Microwave", "Bookshelf", "Mirror", "Kettle", "Wardrobe", "Carpet", "Chimney",
    ],
    "Weather": ["Rain", "Snow", "Thunder", "Fog", "Hail", "Rainbow", "Tornado", "Heatwave", "Drizzle", "Sleet"],
    "Fairy Tales": [
        "Cinderella", "Snow White", "Rapunzel", "Pinocchio", "Hansel and Gretel", "Little Red Riding Hood",
        "Jack and the Beanstalk", "Sleeping Beauty", "Goldilocks", "The Little Mermaid", "Rumpelstiltskin",
        "Aladdin", "Peter Pan", "Thumbelina", "The Frog Prince", "Beauty and the Beast",
    ],
}
