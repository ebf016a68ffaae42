from __future__ import annotations
import json
import logging
from sqlalchemy.orm import Session
from .models import QuestionBankTemplate
from .repository import QuestionRepository

logger = logging.getLogger(__name__)

# (template_id, difficulty, letter pair, target letter, correct word, distractors, hint)
QUESTION_BANK = [
	("e-bd-1", "easy", "b-d", "B", "BATU", ["DATU", "MATU", "SATU"], "Kata dimulai dengan huruf B, seperti BOLA"),
	("e-bd-2", "easy", "b-d", "D", "DASI", ["BASI", "PASI", "NASI"], "Kata dimulai dengan huruf D, seperti DADU"),
	("e-bd-3", "easy", "b-d", "B", "BOLA", ["DOLA", "KOLA", "SOLA"], "Kata dimulai dengan huruf B, benda bundar untuk main"),
	("e-bd-4", "easy", "b-d", "D", "DADU", ["BADU", "RADU", "KADU"], "Kata dimulai dengan huruf D, mainan kotak untuk dilempar"),
	("e-bd-5", "easy", "b-d", "B", "BUKU", ["DUKU", "SUKU", "TUKU"], "Kata dimulai dengan huruf B, untuk dibaca"),
	("e-bd-6", "easy", "b-d", "B", "BABI", ["DABI", "KABI", "RABI"], "Kata dimulai dengan huruf B, hewan berkaki empat"),
	("e-bd-7", "easy", "b-d", "D", "DADA", ["BADA", "RADA", "KADA"], "Kata dimulai dengan huruf D, bagian tubuh di depan"),
	("e-mw-1", "easy", "m-w", "M", "MAMA", ["WAMA", "PAPA", "RAMA"], "Kata dimulai dengan huruf M, sebutan untuk ibu"),
	("e-mw-2", "easy", "m-w", "W", "WAJA", ["MAJA", "RAJA", "TAJA"], "Kata dimulai dengan huruf W, bagian depan mobil"),
	("e-mw-3", "easy", "m-w", "M", "MEJA", ["WEJA", "REJA", "TEJA"], "Kata dimulai dengan huruf M, tempat makan atau belajar"),
	("e-mw-4", "easy", "m-w", "W", "WALI", ["MALI", "BALI", "KALI"], "Kata dimulai dengan huruf W, orang yang menjaga"),
	("e-pq-1", "easy", "p-q", "P", "PAKU", ["QAKU", "BAKU", "MAKU"], "Kata dimulai dengan huruf P, benda runcing dari besi"),
	("e-pq-2", "easy", "p-q", "P", "PAGI", ["QAGI", "BAGI", "LAGI"], "Kata dimulai dengan huruf P, waktu setelah bangun tidur"),
	("e-nu-1", "easy", "n-u", "N", "NASI", ["UASI", "BASI", "RASI"], "Kata dimulai dengan huruf N, makanan pokok dari beras"),
	("e-nu-2", "easy", "n-u", "N", "NAGA", ["UAGA", "RAGA", "TAGA"], "Kata dimulai dengan huruf N, hewan mitos yang besar"),
	("e-nu-3", "easy", "n-u", "U", "ULAR", ["NLAR", "ILAR", "JLAR"], "Kata dimulai dengan huruf U, hewan merayap panjang"),
	("m-bd-1", "medium", "b-d", "B", "BARU", ["DARU", "BIRU", "DURI"], "Kata dengan huruf B, lawan dari lama"),
	("m-bd-2", "medium", "b-d", "D", "DURI", ["BURI", "BIRU", "KURI"], "Kata dengan huruf D, benda tajam di tumbuhan"),
	("m-bd-3", "medium", "b-d", "B", "BAYI", ["DAYI", "RABI", "KADI"], "Kata dengan huruf B, anak yang baru lahir"),
	("m-bd-4", "medium", "b-d", "D", "DARI", ["BARI", "HARI", "LARI"], "Kata dengan huruf D, menunjukkan asal"),
	("m-bd-5", "medium", "b-d", "B", "BUDI", ["DUDI", "RUDI", "SUDI"], "Kata dengan huruf B, nama orang atau perilaku baik"),
	("m-bd-6", "medium", "b-d", "D", "DUIT", ["BUIT", "SUIT", "TUIT"], "Kata dengan huruf D, uang untuk belanja"),
	("m-mw-1", "medium", "m-w", "M", "MATI", ["WATI", "PATI", "SATI"], "Kata dengan huruf M, lawan dari hidup"),
	("m-mw-2", "medium", "m-w", "W", "WARNA", ["MARNA", "BARNA", "DARNA"], "Kata dengan huruf W, merah, biru, hijau adalah..."),
	("m-mw-3", "medium", "m-w", "M", "MADU", ["WADU", "RADU", "PADU"], "Kata dengan huruf M, cairan manis dari lebah"),
	("m-mw-4", "medium", "m-w", "W", "WAKTU", ["MAKTU", "FAKTU", "PAKTU"], "Kata dengan huruf W, jam menunjukkan..."),
	("m-pq-1", "medium", "p-q", "P", "PADI", ["QADI", "RADI", "BADI"], "Kata dengan huruf P, tanaman yang jadi nasi"),
	("m-pq-2", "medium", "p-q", "P", "PETA", ["QETA", "META", "BETA"], "Kata dengan huruf P, gambar wilayah atau jalan"),
	("m-nu-1", "medium", "n-u", "N", "NAMA", ["UAMA", "RAMA", "TAMA"], "Kata dengan huruf N, identitas seseorang"),
	("m-nu-2", "medium", "n-u", "N", "NANTI", ["UANTI", "BANTI", "PANTI"], "Kata dengan huruf N, menunjukkan waktu yang akan datang"),
	("m-nu-3", "medium", "n-u", "U", "UDARA", ["NDARA", "ADARA", "IDARA"], "Kata dengan huruf U, yang kita hirup untuk bernapas"),
	("h-bd-1", "hard", "b-d", "B", "BERITA", ["DERITA", "CERITA", "SERITA"], "Kata dengan huruf B, informasi atau kabar"),
	("h-bd-2", "hard", "b-d", "D", "DERITA", ["BERITA", "CERITA", "SERITA"], "Kata dengan huruf D, penderitaan atau kesusahan"),
	("h-bd-3", "hard", "b-d", "B", "BAKTI", ["DAKTI", "SAKTI", "FAKTI"], "Kata dengan huruf B, pengabdian atau pelayanan"),
	("h-bd-4", "hard", "b-d", "D", "DALAM", ["BALAM", "SALAM", "MALAM"], "Kata dengan huruf D, lawan dari dangkal atau luar"),
	("h-bd-5", "hard", "b-d", "B", "BUDAYA", ["DUDAYA", "SUDAYA", "RUDAYA"], "Kata dengan huruf B, kebiasaan atau tradisi"),
	("h-bd-6", "hard", "b-d", "D", "DUNIA", ["BUNIA", "SUNIA", "RUNIA"], "Kata dengan huruf D, planet tempat kita tinggal"),
	("h-mw-1", "hard", "m-w", "M", "MAWAR", ["WAWAR", "SAWAR", "TAWAR"], "Kata dengan huruf M, bunga berduri yang indah"),
	("h-mw-2", "hard", "m-w", "W", "WAJIB", ["MAJIB", "SAJIB", "TAJIB"], "Kata dengan huruf W, harus dilakukan"),
	("h-mw-3", "hard", "m-w", "M", "MIMPI", ["WIMPI", "SIMPI", "TIMPI"], "Kata dengan huruf M, angan-angan saat tidur"),
	("h-mw-4", "hard", "m-w", "W", "WAJAH", ["MAJAH", "RAJAH", "SAJAH"], "Kata dengan huruf W, muka atau rupa"),
	("h-pq-1", "hard", "p-q", "P", "PAHAM", ["QAHAM", "SAHAM", "RAHAM"], "Kata dengan huruf P, mengerti atau memahami"),
	("h-pq-2", "hard", "p-q", "P", "PIDATO", ["QIDATO", "SIDATO", "RIDATO"], "Kata dengan huruf P, berbicara di depan umum"),
	("h-nu-1", "hard", "n-u", "N", "NEGARA", ["UEGARA", "SEGARA", "MEGARA"], "Kata dengan huruf N, Indonesia adalah sebuah..."),
	("h-nu-2", "hard", "n-u", "N", "NAFAS", ["UAFAS", "RAFAS", "KAFAS"], "Kata dengan huruf N, udara yang masuk dan keluar"),
	("h-nu-3", "hard", "n-u", "U", "UCAPAN", ["NCAPAN", "ACAPAN", "ICAPAN"], "Kata dengan huruf U, kata-kata yang disampaikan"),
]


def seed_question_bank(db: Session) -> int:
	"""Load the static templates once; returns how many rows were inserted."""
	repo = QuestionRepository(db)
	if repo.count_templates() > 0:
		logger.info("Question bank already seeded, skipping")
		return 0
	repo.create_templates(
		QuestionBankTemplate(
			template_id=template_id,
			difficulty=difficulty,
			target_letter_pair=pair,
			target_letter=letter,
			correct_word=word,
			distractors=json.dumps(distractors),
			hint=hint,
		)
		for template_id, difficulty, pair, letter, word, distractors, hint in QUESTION_BANK
	)
	logger.info("Seeded %d question bank templates", len(QUESTION_BANK))
	return len(QUESTION_BANK)
