from tortoise import BaseDBAsyncClient


async def upgrade(db: BaseDBAsyncClient) -> str:
    return """
        CREATE TABLE IF NOT EXISTS "practices" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "name" VARCHAR(255) NOT NULL,
    "phone_number" VARCHAR(32),
    "forwarding_number" VARCHAR(32),
    "timezone" VARCHAR(64) NOT NULL  DEFAULT 'UTC',
    "ai_voice" VARCHAR(128),
    "ai_voice_provider" VARCHAR(32),
    "ai_tone" VARCHAR(12) NOT NULL  DEFAULT 'professional',
    "ai_greeting" TEXT,
    "transfer_keywords" JSONB NOT NULL,
    "emergency_keywords" JSONB NOT NULL,
    "office_hours" JSONB,
    "calcom_api_key" VARCHAR(255),
    "calcom_event_type_id" VARCHAR(64),
    "created_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS "idx_practices_phone_n_3c1f0a" ON "practices" ("phone_number");
CREATE INDEX IF NOT EXISTS "idx_practices_forward_8e2d41" ON "practices" ("forwarding_number");
COMMENT ON COLUMN "practices"."ai_tone" IS 'PROFESSIONAL: professional\nFRIENDLY: friendly\nCASUAL: casual\nEMPATHETIC: empathetic';
CREATE TABLE IF NOT EXISTS "knowledge_base" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "category" VARCHAR(64) NOT NULL,
    "question" TEXT,
    "content" TEXT NOT NULL,
    "position" INT NOT NULL  DEFAULT 0,
    "created_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "practice_id" INT NOT NULL REFERENCES "practices" ("id") ON DELETE CASCADE
);
CREATE TABLE IF NOT EXISTS "phone_numbers" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "phone_number" VARCHAR(32) NOT NULL,
    "twilio_sid" VARCHAR(64),
    "vapi_phone_number_id" VARCHAR(255),
    "vapi_assistant_id" VARCHAR(255),
    "status" VARCHAR(7) NOT NULL  DEFAULT 'pending',
    "is_primary" BOOL NOT NULL  DEFAULT False,
    "created_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "practice_id" INT NOT NULL REFERENCES "practices" ("id") ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS "idx_phone_numbe_phone_n_5b7e19" ON "phone_numbers" ("phone_number");
CREATE INDEX IF NOT EXISTS "idx_phone_numbe_vapi_ph_a04c6d" ON "phone_numbers" ("vapi_phone_number_id");
CREATE INDEX IF NOT EXISTS "idx_phone_numbe_vapi_as_f2981e" ON "phone_numbers" ("vapi_assistant_id");
COMMENT ON COLUMN "phone_numbers"."status" IS 'PENDING: pending\nACTIVE: active';
CREATE TABLE IF NOT EXISTS "patients" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "first_name" VARCHAR(255) NOT NULL,
    "last_name" VARCHAR(255) NOT NULL  DEFAULT 'Unknown',
    "phone" VARCHAR(32),
    "email" VARCHAR(320),
    "patient_type" VARCHAR(8) NOT NULL  DEFAULT 'new',
    "source" VARCHAR(32),
    "created_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "practice_id" INT NOT NULL REFERENCES "practices" ("id") ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS "idx_patients_practic_0d6a52" ON "patients" ("practice_id", "phone");
CREATE INDEX IF NOT EXISTS "idx_patients_practic_c47b93" ON "patients" ("practice_id", "email");
COMMENT ON COLUMN "patients"."patient_type" IS 'NEW: new\nEXISTING: existing';
CREATE TABLE IF NOT EXISTS "calls" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "external_call_id" VARCHAR(191) NOT NULL UNIQUE,
    "assistant_id" VARCHAR(191),
    "caller_number" VARCHAR(32),
    "status" VARCHAR(50),
    "direction" VARCHAR(16),
    "started_at" TIMESTAMPTZ,
    "ended_at" TIMESTAMPTZ,
    "duration_seconds" INT NOT NULL  DEFAULT 0,
    "cost" DECIMAL(10,4),
    "ended_reason" VARCHAR(100),
    "summary" TEXT,
    "transcript" TEXT,
    "recording_url" VARCHAR(1000),
    "created_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "practice_id" INT REFERENCES "practices" ("id") ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS "idx_calls_caller__9a1e27" ON "calls" ("caller_number");
CREATE TABLE IF NOT EXISTS "bookings" (
    "id" UUID NOT NULL PRIMARY KEY,
    "external_call_id" VARCHAR(191),
    "start_time" TIMESTAMPTZ NOT NULL,
    "end_time" TIMESTAMPTZ NOT NULL,
    "timezone" VARCHAR(64) NOT NULL  DEFAULT 'UTC',
    "status" VARCHAR(9) NOT NULL  DEFAULT 'confirmed',
    "appointment_type" VARCHAR(64) NOT NULL  DEFAULT 'consultation',
    "calendar_event_id" VARCHAR(191),
    "created_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "call_id" INT REFERENCES "calls" ("id") ON DELETE SET NULL,
    "patient_id" INT REFERENCES "patients" ("id") ON DELETE SET NULL,
    "practice_id" INT REFERENCES "practices" ("id") ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS "idx_bookings_externa_6f03b8" ON "bookings" ("external_call_id");
CREATE INDEX IF NOT EXISTS "idx_bookings_patient_e15d74" ON "bookings" ("patient_id", "status");
CREATE INDEX IF NOT EXISTS "idx_bookings_practic_2b8c90" ON "bookings" ("practice_id", "start_time");
COMMENT ON COLUMN "bookings"."status" IS 'CONFIRMED: confirmed\nCANCELLED: cancelled\nSCHEDULED: scheduled';
CREATE TABLE IF NOT EXISTS "leads" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "status" VARCHAR(10) NOT NULL  DEFAULT 'new',
    "priority" VARCHAR(6) NOT NULL  DEFAULT 'medium',
    "expected_value" DECIMAL(10,2),
    "notes" TEXT,
    "source" VARCHAR(32) NOT NULL  DEFAULT 'manual',
    "created_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "updated_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "call_id" INT  UNIQUE REFERENCES "calls" ("id") ON DELETE SET NULL,
    "patient_id" INT REFERENCES "patients" ("id") ON DELETE SET NULL,
    "practice_id" INT REFERENCES "practices" ("id") ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS "idx_leads_source_4e7a0c" ON "leads" ("source");
CREATE INDEX IF NOT EXISTS "idx_leads_practic_93b2f5" ON "leads" ("practice_id", "status");
COMMENT ON COLUMN "leads"."status" IS 'NEW: new\nCONTACTED: contacted\nINTERESTED: interested\nSCHEDULED: scheduled\nLOST: lost';
COMMENT ON COLUMN "leads"."priority" IS 'LOW: low\nMEDIUM: medium\nHIGH: high';
CREATE TABLE IF NOT EXISTS "messages" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "message_type" VARCHAR(16) NOT NULL  DEFAULT 'sms',
    "direction" VARCHAR(8) NOT NULL,
    "from_address" VARCHAR(32) NOT NULL,
    "to_address" VARCHAR(32) NOT NULL,
    "body" TEXT NOT NULL,
    "provider" VARCHAR(32) NOT NULL  DEFAULT 'twilio',
    "provider_message_id" VARCHAR(64),
    "status" VARCHAR(24) NOT NULL,
    "error_message" TEXT,
    "related_type" VARCHAR(32),
    "related_id" VARCHAR(64),
    "sent_at" TIMESTAMPTZ,
    "received_at" TIMESTAMPTZ,
    "created_at" TIMESTAMPTZ NOT NULL  DEFAULT CURRENT_TIMESTAMP,
    "patient_id" INT REFERENCES "patients" ("id") ON DELETE SET NULL,
    "practice_id" INT NOT NULL REFERENCES "practices" ("id") ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS "idx_messages_provide_7c5d12" ON "messages" ("provider_message_id");
CREATE INDEX IF NOT EXISTS "idx_messages_practic_b8e3a6" ON "messages" ("practice_id", "created_at");
COMMENT ON COLUMN "messages"."direction" IS 'INBOUND: inbound\nOUTBOUND: outbound';
COMMENT ON TABLE "messages" IS 'SMS audit log, one row per inbound message or outbound attempt.';
CREATE TABLE IF NOT EXISTS "aerich" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "version" VARCHAR(255) NOT NULL,
    "app" VARCHAR(100) NOT NULL,
    "content" JSONB NOT NULL
);"""


async def downgrade(db: BaseDBAsyncClient) -> str:
    return """
        """
