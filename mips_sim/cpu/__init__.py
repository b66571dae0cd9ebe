# CPU model: register file, 32-bit ALU helpers, opcode/operand decoding.
